import logging

import numpy as np

from .errores import ConfigurationError, DataError, TransportError
from .modelos import Kernel, SectionInfo, WorkerTask
from .sobel import procesar_tarea
from .transporte import (
    RANK_COORDINADOR,
    TAG_INFO_SECCION,
    TAG_MASCARA,
    TAG_RESULTADO,
    TAG_SECCION_IMAGEN,
)

logger = logging.getLogger(__name__)


def recibir_tarea(transporte):
    """Recibe mascara, info de seccion y pixeles, en ese orden, desde el coordinador."""
    kernel = transporte.recibir(RANK_COORDINADOR, TAG_MASCARA)
    info = transporte.recibir(RANK_COORDINADOR, TAG_INFO_SECCION)
    pixeles = transporte.recibir(RANK_COORDINADOR, TAG_SECCION_IMAGEN)
    if not isinstance(kernel, Kernel):
        raise TransportError(f"Se esperaba la mascara, llego {type(kernel).__name__}")
    if not isinstance(info, SectionInfo):
        raise TransportError(f"Se esperaba la info de seccion, llego {type(info).__name__}")
    if not isinstance(pixeles, np.ndarray):
        raise TransportError(f"Se esperaban los pixeles, llego {type(pixeles).__name__}")
    return WorkerTask(info=info, pixeles=pixeles, kernel=kernel)


def ejecutar_worker(transporte, hilos=None):
    """Procesa exactamente una seccion y devuelve el resultado al coordinador.

    Si los pixeles no coinciden con lo declarado se responde igual, con una
    seccion vacia, para que el coordinador no quede esperando.
    """
    if transporte.rank == RANK_COORDINADOR:
        raise ConfigurationError("El rank 0 es el coordinador, no puede actuar como worker")
    prefijo = f"[WORKER {transporte.rank}]"

    tarea = recibir_tarea(transporte)
    info = tarea.info
    logger.info(
        "%s Seccion %d recibida: filas %d-%d, ancho %d",
        prefijo, info.section_id, info.start_row, info.end_row - 1, info.width,
    )

    try:
        resultado = procesar_tarea(tarea, hilos=hilos)
        pixeles = resultado.pixeles
    except DataError as e:
        logger.error("%s %s", prefijo, e)
        resultado = None
        pixeles = np.zeros((0, max(info.width, 0)), dtype=np.uint8)

    transporte.enviar(RANK_COORDINADOR, TAG_RESULTADO, info)
    transporte.enviar(RANK_COORDINADOR, TAG_RESULTADO, pixeles)
    logger.info("%s Seccion %d enviada al coordinador", prefijo, info.section_id)
    return resultado
