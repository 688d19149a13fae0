import json
import logging

import redis

from .errores import ConfigurationError
from .modelos import Kernel

logger = logging.getLogger(__name__)

SOBEL_X = (
    (-1.0, 0.0, 1.0),
    (-2.0, 0.0, 2.0),
    (-1.0, 0.0, 1.0),
)

SOBEL_Y = (
    (-1.0, -2.0, -1.0),
    (0.0, 0.0, 0.0),
    (1.0, 2.0, 1.0),
)


def kernel_sobel():
    return Kernel(gx=SOBEL_X, gy=SOBEL_Y)


def parsear_kernel(texto):
    """Convierte un JSON {"gx": [[...]], "gy": [[...]]} en Kernel.

    Lanza ConfigurationError si el documento no es valido.
    """
    try:
        datos = json.loads(texto)
    except (TypeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"JSON de kernel invalido: {e}")
    if not isinstance(datos, dict) or "gx" not in datos or "gy" not in datos:
        raise ConfigurationError("El kernel debe tener las claves 'gx' y 'gy'")
    try:
        return Kernel.desde_dict(datos)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Mascaras invalidas: {e}")


def _leer_archivo(ruta):
    with open(ruta, "r", encoding="utf-8") as f:
        return f.read()


def _leer_redis(config, clave, cliente=None):
    if cliente is None:
        cliente = redis.Redis(host=config.redis_host, port=config.redis_port, decode_responses=True)
    valor = cliente.get(clave)
    if valor is None:
        return None
    if isinstance(valor, bytes):
        valor = valor.decode("utf-8")
    return valor


def resolver_kernel(fuente=None, config=None, redis_cliente=None):
    """Resuelve el kernel de la ejecucion una sola vez.

    Orden: documento JSON explicito, archivo SOBEL_KERNEL_FILE, clave de Redis
    SOBEL_KERNEL_REDIS_KEY. Si no hay fuente o falla el parseo se usa Sobel.
    """
    texto = fuente
    origen = "parametro"
    try:
        if texto is None and config is not None and config.kernel_archivo:
            origen = f"archivo {config.kernel_archivo}"
            texto = _leer_archivo(config.kernel_archivo)
        if texto is None and config is not None and config.kernel_redis_key:
            origen = f"redis:{config.kernel_redis_key}"
            texto = _leer_redis(config, config.kernel_redis_key, redis_cliente)
    except (OSError, UnicodeDecodeError, redis.exceptions.RedisError) as e:
        logger.warning("No se pudo leer el kernel desde %s: %s. Usando Sobel.", origen, e)
        return kernel_sobel()

    if texto is None:
        logger.info("Sin kernel configurado, usando Sobel 3x3")
        return kernel_sobel()

    try:
        kernel = parsear_kernel(texto)
    except ConfigurationError as e:
        logger.warning("Kernel invalido en %s: %s. Usando Sobel.", origen, e)
        return kernel_sobel()
    logger.info("Kernel cargado desde %s", origen)
    return kernel
