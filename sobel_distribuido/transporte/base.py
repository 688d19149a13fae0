import abc
import threading
import time
from collections import deque

from ..errores import TransportError

# Tags de los mensajes entre coordinador y workers
TAG_SECCION_IMAGEN = 100
TAG_MASCARA = 101
TAG_INFO_SECCION = 102
TAG_RESULTADO = 200

RANK_COORDINADOR = 0


class Transporte(abc.ABC):
    """Mensajeria punto a punto entre el coordinador y los workers.

    Los mensajes de un mismo origen hacia un mismo destino se entregan en el
    orden en que se enviaron; entre origenes distintos no hay orden. Las
    operaciones bloquean; timeout=None espera indefinidamente.
    """

    @property
    @abc.abstractmethod
    def rank(self):
        """Identidad de este proceso dentro del grupo."""

    @property
    @abc.abstractmethod
    def size(self):
        """Cantidad de procesos del grupo, coordinador incluido."""

    @abc.abstractmethod
    def enviar(self, destino, tag, datos):
        pass

    @abc.abstractmethod
    def recibir(self, origen, tag, timeout=None):
        """Primer mensaje con (origen, tag) en orden de llegada."""

    @abc.abstractmethod
    def recibir_cualquiera(self, tag, timeout=None):
        """Primer mensaje con ese tag de cualquier origen. Devuelve (origen, datos)."""

    def cerrar(self):
        pass

    def _validar_rank(self, rank, rol):
        if not isinstance(rank, int) or not 0 <= rank < self.size:
            raise TransportError(f"Rank de {rol} invalido: {rank} (tamaño del grupo: {self.size})")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cerrar()


class Buzon:
    """Cola de mensajes con recepcion selectiva por (origen, tag)."""

    def __init__(self):
        self._mensajes = deque()
        self._condicion = threading.Condition()
        self._cerrado = False

    def depositar(self, origen, tag, datos):
        with self._condicion:
            self._mensajes.append((origen, tag, datos))
            self._condicion.notify_all()

    def extraer(self, origen, tag):
        """Saca el primer mensaje que coincide sin bloquear; None si no hay."""
        with self._condicion:
            return self._extraer(origen, tag)

    def _extraer(self, origen, tag):
        for i, (o, t, datos) in enumerate(self._mensajes):
            if t == tag and (origen is None or o == origen):
                del self._mensajes[i]
                return o, datos
        return None

    def tomar(self, origen, tag, timeout=None):
        limite = None if timeout is None else time.monotonic() + timeout
        with self._condicion:
            while True:
                encontrado = self._extraer(origen, tag)
                if encontrado is not None:
                    return encontrado
                if self._cerrado:
                    raise TransportError(f"Buzon cerrado esperando tag {tag}")
                restante = None if limite is None else limite - time.monotonic()
                if restante is not None and restante <= 0:
                    desde = "cualquier origen" if origen is None else f"rank {origen}"
                    raise TransportError(f"Timeout esperando tag {tag} desde {desde}")
                self._condicion.wait(restante)

    def cerrar(self):
        """Despierta a quien espera; los mensajes ya depositados se pueden seguir tomando."""
        with self._condicion:
            self._cerrado = True
            self._condicion.notify_all()
