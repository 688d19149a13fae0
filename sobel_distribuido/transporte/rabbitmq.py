import logging
import time

import pika

from .. import codec
from ..errores import TransportError
from .base import Buzon, Transporte

logger = logging.getLogger(__name__)

INTERVALO_SONDEO = 0.05  # Segundos entre consultas a una cola vacia


def nombre_cola(prefijo, rank):
    return f"{prefijo}.rank.{rank}"


def conectar_rabbitmq(config):
    """Abre una conexion bloqueante, reintentando mientras RabbitMQ no responda."""
    reintentos = max(1, config.conexion_reintentos)
    for i in range(reintentos):
        try:
            connection = pika.BlockingConnection(pika.ConnectionParameters(
                host=config.rabbitmq_host,
                port=config.rabbitmq_port,
                credentials=pika.PlainCredentials(config.rabbitmq_usuario, config.rabbitmq_password),
            ))
            logger.info("Conectado a RabbitMQ en %s:%d", config.rabbitmq_host, config.rabbitmq_port)
            return connection
        except pika.exceptions.AMQPConnectionError as e:
            logger.warning(
                "Intento %d de %d: RabbitMQ no disponible (%s), esperando %ss...",
                i + 1, reintentos, e, config.conexion_espera,
            )
            if i < reintentos - 1:
                time.sleep(config.conexion_espera)
    raise TransportError(f"No se pudo conectar a RabbitMQ luego de {reintentos} intentos.")


class TransporteRabbitMQ(Transporte):
    """Una cola por rank; los headers del mensaje llevan origen y tag.

    Los mensajes que llegan antes de que alguien los pida quedan en un buzon
    local, asi la recepcion selectiva respeta el orden de cada origen.
    """

    def __init__(self, rank, size, config, conexion=None):
        self._rank = rank
        self._size = size
        self._prefijo = config.rabbitmq_prefijo
        self._validar_rank(rank, "proceso")
        self._pendientes = Buzon()
        self._conexion = conexion if conexion is not None else conectar_rabbitmq(config)
        try:
            self._canal = self._conexion.channel()
            for r in range(size):
                self._canal.queue_declare(queue=nombre_cola(self._prefijo, r))
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"No se pudieron declarar las colas: {e}")

    @classmethod
    def desde_config(cls, config):
        return cls(config.rank, config.world_size, config)

    @property
    def rank(self):
        return self._rank

    @property
    def size(self):
        return self._size

    def enviar(self, destino, tag, datos):
        self._validar_rank(destino, "destino")
        cuerpo = codec.codificar(datos)
        try:
            self._canal.basic_publish(
                exchange="",
                routing_key=nombre_cola(self._prefijo, destino),
                body=cuerpo,
                properties=pika.BasicProperties(headers={"origen": self._rank, "tag": tag}),
            )
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Fallo al enviar tag {tag} al rank {destino}: {e}")

    def _siguiente_mensaje(self):
        try:
            method_frame, properties, body = self._canal.basic_get(
                queue=nombre_cola(self._prefijo, self._rank), auto_ack=False
            )
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Fallo al leer la cola del rank {self._rank}: {e}")
        if method_frame is None:
            return None
        headers = (properties.headers or {}) if properties is not None else {}
        # Sin ack, un mensaje mal formado vuelve a la cola al cerrar el canal
        if "origen" not in headers or "tag" not in headers:
            raise TransportError("Mensaje sin headers de origen/tag")
        datos = codec.decodificar(body)
        try:
            self._canal.basic_ack(delivery_tag=method_frame.delivery_tag)
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Fallo al confirmar el mensaje en el rank {self._rank}: {e}")
        return int(headers["origen"]), int(headers["tag"]), datos

    def _esperar(self, origen, tag, timeout):
        encontrado = self._pendientes.extraer(origen, tag)
        if encontrado is not None:
            return encontrado
        limite = None if timeout is None else time.monotonic() + timeout
        while True:
            mensaje = self._siguiente_mensaje()
            if mensaje is not None:
                o, t, datos = mensaje
                if t == tag and (origen is None or o == origen):
                    return o, datos
                self._pendientes.depositar(o, t, datos)
                continue
            if limite is not None and time.monotonic() >= limite:
                desde = "cualquier origen" if origen is None else f"rank {origen}"
                raise TransportError(f"Timeout esperando tag {tag} desde {desde}")
            self._conexion.sleep(INTERVALO_SONDEO)

    def recibir(self, origen, tag, timeout=None):
        self._validar_rank(origen, "origen")
        _, datos = self._esperar(origen, tag, timeout)
        return datos

    def recibir_cualquiera(self, tag, timeout=None):
        return self._esperar(None, tag, timeout)

    def cerrar(self):
        try:
            if self._conexion.is_open:
                self._conexion.close()
        except pika.exceptions.AMQPError as e:
            logger.warning("Error al cerrar la conexion con RabbitMQ: %s", e)
