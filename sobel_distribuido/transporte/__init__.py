from .base import (
    RANK_COORDINADOR,
    TAG_INFO_SECCION,
    TAG_MASCARA,
    TAG_RESULTADO,
    TAG_SECCION_IMAGEN,
    Buzon,
    Transporte,
)
from .memoria import GrupoMemoria, TransporteMemoria
from .rabbitmq import TransporteRabbitMQ, conectar_rabbitmq

__all__ = [
    "RANK_COORDINADOR",
    "TAG_INFO_SECCION",
    "TAG_MASCARA",
    "TAG_RESULTADO",
    "TAG_SECCION_IMAGEN",
    "Buzon",
    "Transporte",
    "GrupoMemoria",
    "TransporteMemoria",
    "TransporteRabbitMQ",
    "conectar_rabbitmq",
]
