import copy

import numpy as np

from ..errores import TransportError
from ..modelos import Kernel, SectionInfo
from .base import Buzon, Transporte


def _copiar(datos):
    # Lo enviado nunca queda compartido con quien lo recibe
    if isinstance(datos, np.ndarray):
        return np.array(datos, copy=True)
    if isinstance(datos, (Kernel, SectionInfo)):
        return datos
    return copy.deepcopy(datos)


class GrupoMemoria:
    """Grupo de procesos simulado dentro de un mismo proceso (un buzon por rank)."""

    def __init__(self, size):
        if size < 1:
            raise TransportError(f"El grupo necesita al menos 1 proceso (recibido: {size})")
        self.size = size
        self.buzones = [Buzon() for _ in range(size)]

    def transporte(self, rank):
        return TransporteMemoria(self, rank)

    def transportes(self):
        return [self.transporte(rank) for rank in range(self.size)]

    def cerrar(self):
        for buzon in self.buzones:
            buzon.cerrar()


class TransporteMemoria(Transporte):

    def __init__(self, grupo, rank):
        self._grupo = grupo
        self._rank = rank
        self._cerrado = False
        self._validar_rank(rank, "proceso")

    @property
    def rank(self):
        return self._rank

    @property
    def size(self):
        return self._grupo.size

    def enviar(self, destino, tag, datos):
        if self._cerrado:
            raise TransportError(f"Transporte del rank {self._rank} cerrado")
        self._validar_rank(destino, "destino")
        self._grupo.buzones[destino].depositar(self._rank, tag, _copiar(datos))

    def recibir(self, origen, tag, timeout=None):
        self._validar_rank(origen, "origen")
        _, datos = self._grupo.buzones[self._rank].tomar(origen, tag, timeout)
        return datos

    def recibir_cualquiera(self, tag, timeout=None):
        return self._grupo.buzones[self._rank].tomar(None, tag, timeout)

    def cerrar(self):
        self._cerrado = True
