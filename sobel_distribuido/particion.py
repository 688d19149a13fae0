import logging

import numpy as np

from .errores import ConfigurationError, DataError
from .modelos import SectionInfo

logger = logging.getLogger(__name__)


def calcular_secciones(alto, ancho, n_workers):
    """Divide las filas [0, alto) en n_workers secciones contiguas.

    Cada worker recibe alto // n_workers filas y el ultimo absorbe el resto,
    asi la carga desigual siempre cae en la ultima seccion.
    """
    if n_workers < 1:
        raise ConfigurationError(f"Se requiere al menos 1 worker (recibido: {n_workers})")
    if alto < 1 or ancho < 1:
        raise DataError(f"Dimensiones invalidas: {ancho}x{alto}")

    paso = alto // n_workers
    resto = alto % n_workers
    secciones = []
    inicio = 0
    for i in range(n_workers):
        filas = paso + resto if i == n_workers - 1 else paso
        secciones.append(SectionInfo(section_id=i, start_row=inicio, num_rows=filas, width=ancho))
        logger.debug("Seccion %d: filas %d-%d (%d filas)", i, inicio, inicio + filas - 1, filas)
        inicio += filas
    return tuple(secciones)


def extraer_seccion(imagen, info):
    """Copia independiente de las filas de la seccion."""
    if info.width != imagen.ancho or info.end_row > imagen.alto or info.start_row < 0:
        raise DataError(f"La seccion {info.section_id} no entra en la imagen {imagen.ancho}x{imagen.alto}")
    return np.array(imagen.pixeles[info.start_row:info.end_row], dtype=np.uint8, copy=True)


def insertar_seccion(destino, info, pixeles):
    if pixeles.shape != (info.num_rows, info.width):
        raise DataError(
            f"Seccion {info.section_id}: tamaño declarado {info.num_rows}x{info.width}, "
            f"recibido {pixeles.shape[0]}x{pixeles.shape[1] if pixeles.ndim > 1 else 0}"
        )
    destino[info.start_row:info.end_row] = pixeles
