import enum
import logging
import time

import numpy as np

from .errores import (
    ConfigurationError,
    ReconstructionError,
    SobelDistribuidoError,
    TransportError,
)
from .kernel import resolver_kernel
from .modelos import ResultSection, SectionInfo
from .particion import calcular_secciones, extraer_seccion
from .reconstruccion import reconstruir_imagen
from .transporte import (
    RANK_COORDINADOR,
    TAG_INFO_SECCION,
    TAG_MASCARA,
    TAG_RESULTADO,
    TAG_SECCION_IMAGEN,
)

logger = logging.getLogger(__name__)


class Estado(enum.Enum):
    INIT = "init"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    RECONSTRUCTING = "reconstructing"
    DONE = "done"
    FAILED = "failed"


def rank_de_seccion(section_id):
    # Los workers son los ranks 1, 2, 3, ...
    return section_id + 1


class Coordinador:
    """Planifica las secciones, las despacha, junta los resultados y reconstruye.

    El coordinador es el rank 0 del transporte; los demas ranks son workers.
    ejecutar() devuelve la imagen final o lanza el error que hizo fallar la
    ejecucion. Nunca se devuelve una imagen parcial.
    """

    def __init__(self, transporte, kernel=None, fuente_kernel=None, config=None, timeout=None):
        self.transporte = transporte
        self.kernel = kernel
        self.fuente_kernel = fuente_kernel
        self.config = config
        self.timeout = timeout
        self.estado = Estado.INIT
        self.error = None

    def _transicion(self, estado):
        logger.debug("[COORDINADOR] %s -> %s", self.estado.name, estado.name)
        self.estado = estado

    def contar_workers(self):
        n_workers = self.transporte.size - 1
        if n_workers < 1:
            raise ConfigurationError(
                f"No hay workers disponibles: procesos totales {self.transporte.size} "
                f"(1 coordinador + {max(n_workers, 0)} workers)"
            )
        return n_workers

    def _resolver_kernel(self):
        if self.kernel is None:
            self.kernel = resolver_kernel(self.fuente_kernel, config=self.config)
        return self.kernel

    def despachar(self, imagen, secciones, kernel):
        """Envia mascara, info y pixeles a cada worker. Devuelve las secciones que fallaron."""
        fallidas = []
        for info in secciones:
            destino = rank_de_seccion(info.section_id)
            try:
                self.transporte.enviar(destino, TAG_MASCARA, kernel)
                self.transporte.enviar(destino, TAG_INFO_SECCION, info)
                self.transporte.enviar(destino, TAG_SECCION_IMAGEN, extraer_seccion(imagen, info))
            except TransportError as e:
                logger.error(
                    "[COORDINADOR] Fallo al enviar la seccion %d al worker %d: %s",
                    info.section_id, destino, e,
                )
                fallidas.append(info.section_id)
                continue
            logger.info(
                "[COORDINADOR] Seccion %d (filas %d-%d) enviada al worker %d",
                info.section_id, info.start_row, info.end_row - 1, destino,
            )
        return fallidas

    def recolectar(self, secciones):
        """Recibe respuestas de cualquier worker hasta tener todos los section_id.

        Ids repetidos o fuera de rango se registran y se ignoran. Cada worker
        responde una sola vez: si todos respondieron y aun falta alguna
        seccion, la ejecucion falla.
        """
        n_secciones = len(secciones)
        completas = {}
        sin_responder = {rank_de_seccion(info.section_id) for info in secciones}

        while len(completas) < n_secciones:
            if not sin_responder:
                faltantes = sorted(set(range(n_secciones)) - set(completas))
                raise ReconstructionError(
                    f"Todos los workers respondieron pero faltan las secciones {faltantes}"
                )
            origen, info = self.transporte.recibir_cualquiera(TAG_RESULTADO, timeout=self.timeout)
            pixeles = self.transporte.recibir(origen, TAG_RESULTADO, timeout=self.timeout)
            sin_responder.discard(origen)

            if not isinstance(info, SectionInfo) or not isinstance(pixeles, np.ndarray):
                logger.error("[COORDINADOR] Respuesta mal formada del worker %d", origen)
                continue
            section_id = info.section_id
            if not 0 <= section_id < n_secciones:
                logger.error("[COORDINADOR] ID de seccion invalido: %d (worker %d)", section_id, origen)
                continue
            if section_id in completas:
                logger.warning("[COORDINADOR] Seccion %d repetida (worker %d), se ignora", section_id, origen)
                continue
            esperado = secciones[section_id]
            if pixeles.shape != (esperado.num_rows, esperado.width):
                logger.error(
                    "[COORDINADOR] Seccion %d del worker %d: se esperaban %dx%d pixeles, llegaron %s",
                    section_id, origen, esperado.num_rows, esperado.width, pixeles.shape,
                )
                continue
            completas[section_id] = ResultSection(info=esperado, pixeles=pixeles)
            logger.info(
                "[COORDINADOR] Seccion %d completada (%d/%d)", section_id, len(completas), n_secciones
            )
        return list(completas.values())

    def ejecutar(self, imagen):
        inicio = time.time()
        try:
            n_workers = self.contar_workers()
            if n_workers > imagen.alto:
                raise ConfigurationError(
                    f"Hay {n_workers} workers para una imagen de {imagen.alto} filas; "
                    "cada worker necesita al menos una fila"
                )
            kernel = self._resolver_kernel()
            secciones = calcular_secciones(imagen.alto, imagen.ancho, n_workers)

            self._transicion(Estado.DISPATCHING)
            fallidas = self.despachar(imagen, secciones, kernel)
            if fallidas:
                raise TransportError(f"No se pudieron despachar las secciones {fallidas}")

            self._transicion(Estado.COLLECTING)
            resultados = self.recolectar(secciones)

            self._transicion(Estado.RECONSTRUCTING)
            final = reconstruir_imagen(resultados, secciones, imagen.ancho, imagen.alto)
        except SobelDistribuidoError as e:
            self.error = e
            self._transicion(Estado.FAILED)
            logger.error("[COORDINADOR] Ejecucion fallida: %s", e)
            raise
        except Exception as e:
            self.error = e
            self._transicion(Estado.FAILED)
            logger.exception("[COORDINADOR] Error inesperado")
            raise

        self._transicion(Estado.DONE)
        logger.info(
            "[COORDINADOR] Imagen %dx%d procesada con %d workers en %.2fs",
            imagen.ancho, imagen.alto, n_workers, time.time() - inicio,
        )
        return final
