import logging
import os
from dataclasses import dataclass

from .errores import ConfigurationError


def _entero(nombre, por_defecto):
    valor = os.getenv(nombre)
    if valor is None or valor.strip() == "":
        return por_defecto
    try:
        return int(valor)
    except ValueError:
        raise ConfigurationError(f"La variable {nombre} debe ser un entero (recibido: {valor!r})")


def _decimal(nombre, por_defecto):
    valor = os.getenv(nombre)
    if valor is None or valor.strip() == "":
        return por_defecto
    try:
        return float(valor)
    except ValueError:
        raise ConfigurationError(f"La variable {nombre} debe ser un numero (recibido: {valor!r})")


@dataclass(frozen=True)
class Configuracion:
    rabbitmq_host: str = "localhost"
    rabbitmq_port: int = 5672
    rabbitmq_usuario: str = "guest"
    rabbitmq_password: str = "guest"
    rabbitmq_prefijo: str = "sobel"          # Prefijo de las colas por rank
    redis_host: str = "localhost"
    redis_port: int = 6379
    rank: int = 0
    world_size: int = 1
    nro_workers: int = 4                     # Workers en modo local
    rol: str = "local"                       # coordinador | worker | local
    kernel_archivo: str = ""
    kernel_redis_key: str = ""
    log_level: str = "INFO"
    conexion_reintentos: int = 5             # Intentos de conexion a RabbitMQ
    conexion_espera: float = 10.0            # Segundos entre intentos


def cargar_configuracion():
    """Lee la configuracion desde variables de entorno."""
    return Configuracion(
        rabbitmq_host=os.getenv("RABBITMQ_HOST", "localhost"),
        rabbitmq_port=_entero("RABBITMQ_PORT", 5672),
        rabbitmq_usuario=os.getenv("RABBITMQ_USER", "guest"),
        rabbitmq_password=os.getenv("RABBITMQ_PASSWORD", "guest"),
        rabbitmq_prefijo=os.getenv("RABBITMQ_PREFIJO", "sobel"),
        redis_host=os.getenv("REDIS_HOST", "localhost"),
        redis_port=_entero("REDIS_PORT", 6379),
        rank=_entero("RANK", 0),
        world_size=_entero("WORLD_SIZE", 1),
        nro_workers=_entero("NRO_WORKERS", 4),
        rol=os.getenv("ROL", "local").strip().lower(),
        kernel_archivo=os.getenv("SOBEL_KERNEL_FILE", ""),
        kernel_redis_key=os.getenv("SOBEL_KERNEL_REDIS_KEY", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        conexion_reintentos=_entero("CONEXION_REINTENTOS", 5),
        conexion_espera=_decimal("CONEXION_ESPERA", 10.0),
    )


def configurar_logging(nivel="INFO"):
    logging.basicConfig(
        level=getattr(logging, nivel, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Ajustar el nivel de logs para librerías externas para reducir ruido
    logging.getLogger("pika").setLevel(logging.WARNING)       # Solo warnings o errores de Pika
    logging.getLogger("werkzeug").setLevel(logging.WARNING)   # Solo warnings o errores del servidor Flask
