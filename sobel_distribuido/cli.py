import logging
import sys

from .config import cargar_configuracion, configurar_logging
from .coordinador import Coordinador
from .errores import ConfigurationError, SobelDistribuidoError
from .imagen_io import cargar_imagen_gris, guardar_imagen
from .local import procesar_local
from .transporte import TransporteRabbitMQ
from .worker import ejecutar_worker

logger = logging.getLogger(__name__)

SALIDA_POR_DEFECTO = "resultado.png"

USO = """
Uso: sobel-distribuido <ruta_imagen> [ruta_salida]

El rol se elige con la variable ROL:
  local        coordinador y NRO_WORKERS workers en este proceso (por defecto)
  coordinador  rank 0 sobre RabbitMQ, WORLD_SIZE procesos en total
  worker       rank RANK sobre RabbitMQ, no recibe argumentos

Ejemplo:
  ROL=local NRO_WORKERS=4 sobel-distribuido imagen.png
"""


def _procesar(config, ruta_imagen, ruta_salida):
    imagen = cargar_imagen_gris(ruta_imagen)
    if config.rol == "coordinador":
        with TransporteRabbitMQ(0, config.world_size, config) as transporte:
            resultado = Coordinador(transporte, config=config).ejecutar(imagen)
    else:
        resultado = procesar_local(imagen, config.nro_workers, config=config)
    guardar_imagen(ruta_salida, resultado)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        config = cargar_configuracion()
    except ConfigurationError as e:
        configurar_logging()
        logger.error("Configuracion invalida: %s", e)
        return 1
    configurar_logging(config.log_level)

    try:
        if config.rol == "worker":
            with TransporteRabbitMQ.desde_config(config) as transporte:
                ejecutar_worker(transporte)
            return 0
        if config.rol not in ("local", "coordinador"):
            raise ConfigurationError(f"Rol desconocido: {config.rol!r}")
        if len(argv) < 1:
            logger.error("Falta argumento: ruta de la imagen")
            print(USO, file=sys.stderr)
            return 1
        ruta_salida = argv[1] if len(argv) > 1 else SALIDA_POR_DEFECTO
        _procesar(config, argv[0], ruta_salida)
    except SobelDistribuidoError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
