import logging
import threading

from .coordinador import Coordinador
from .errores import ConfigurationError, SobelDistribuidoError
from .transporte import GrupoMemoria
from .worker import ejecutar_worker

logger = logging.getLogger(__name__)


def _hilo_worker(transporte, hilos):
    try:
        ejecutar_worker(transporte, hilos=hilos)
    except SobelDistribuidoError as e:
        logger.error("[WORKER %d] Fallo: %s", transporte.rank, e)


def procesar_local(imagen, n_workers, kernel=None, fuente_kernel=None, config=None, hilos=None, timeout=None):
    """Ejecuta coordinador y n_workers workers como hilos de este proceso."""
    if n_workers > imagen.alto:
        raise ConfigurationError(
            f"Hay {n_workers} workers para una imagen de {imagen.alto} filas; "
            "cada worker necesita al menos una fila"
        )
    grupo = GrupoMemoria(max(n_workers, 0) + 1)
    transportes = grupo.transportes()

    workers = []
    for transporte in transportes[1:]:
        hilo = threading.Thread(
            target=_hilo_worker,
            args=(transporte, hilos),
            name=f"worker-{transporte.rank}",
            daemon=True,
        )
        hilo.start()
        workers.append(hilo)

    coordinador = Coordinador(
        transportes[0], kernel=kernel, fuente_kernel=fuente_kernel, config=config, timeout=timeout
    )
    try:
        return coordinador.ejecutar(imagen)
    finally:
        # Si el coordinador fallo, los workers que esperan su tarea salen con TransportError
        grupo.cerrar()
        for hilo in workers:
            hilo.join(timeout)
        for transporte in transportes:
            transporte.cerrar()
