import logging

import numpy as np

from .errores import DataError, ReconstructionError
from .modelos import RasterImage
from .particion import insertar_seccion

logger = logging.getLogger(__name__)


def corregir_costuras(imagen, secciones):
    """Tapa el artefacto de relleno con ceros en cada limite entre secciones.

    Para cada par adyacente, la ultima fila de la seccion de arriba se copia
    de la fila anterior y la primera fila de la de abajo de la siguiente.
    Es una aproximacion por vecino mas cercano, no recalcula el gradiente.
    """
    alto = imagen.shape[0]
    ordenadas = sorted(secciones, key=lambda s: s.start_row)
    for arriba, abajo in zip(ordenadas[:-1], ordenadas[1:]):
        fila_inferior = arriba.end_row - 1
        fila_superior = abajo.start_row
        if 0 < fila_inferior < alto:
            imagen[fila_inferior] = imagen[fila_inferior - 1]
        if 0 <= fila_superior < alto - 1:
            imagen[fila_superior] = imagen[fila_superior + 1]
    return imagen


def reconstruir_imagen(resultados, secciones, ancho, alto):
    """Une las secciones procesadas en una sola imagen y corrige las costuras.

    Cada seccion se ubica por su section_id, nunca por el orden de llegada.
    Si falta alguna no se genera imagen parcial.
    """
    esperados = {info.section_id: info for info in secciones}
    por_id = {}
    for resultado in resultados:
        section_id = resultado.info.section_id
        if section_id not in esperados:
            raise ReconstructionError(f"ID de seccion fuera de rango: {section_id}")
        if section_id in por_id:
            raise ReconstructionError(f"Seccion {section_id} recibida mas de una vez")
        por_id[section_id] = resultado

    faltantes = sorted(set(esperados) - set(por_id))
    if faltantes:
        raise ReconstructionError(f"Faltan secciones: {faltantes}")

    final = np.zeros((alto, ancho), dtype=np.uint8)
    for section_id, info in sorted(esperados.items()):
        if info.width != ancho or info.start_row < 0 or info.end_row > alto:
            raise ReconstructionError(f"La seccion {section_id} no entra en una imagen {ancho}x{alto}")
        try:
            insertar_seccion(final, info, np.asarray(por_id[section_id].pixeles))
        except DataError as e:
            raise ReconstructionError(str(e)) from e
        logger.debug("Seccion %d copiada en filas %d-%d", section_id, info.start_row, info.end_row - 1)

    corregir_costuras(final, esperados.values())
    return RasterImage(final)
