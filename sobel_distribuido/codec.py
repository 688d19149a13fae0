"""Serializacion de mensajes para transportes de red.

Cada mensaje viaja como JSON; los pixeles van en base64 sin comprimir
(una imagen JPEG perderia informacion en el viaje).
"""

import base64
import json

import numpy as np

from .errores import ConfigurationError, TransportError
from .modelos import Kernel, SectionInfo


def codificar(datos):
    if isinstance(datos, Kernel):
        mensaje = {"tipo": "kernel", "datos": datos.a_dict()}
    elif isinstance(datos, SectionInfo):
        mensaje = {"tipo": "info", "datos": datos.a_dict()}
    elif isinstance(datos, np.ndarray):
        if datos.ndim != 2:
            raise TransportError(f"Solo se pueden enviar secciones 2D, forma: {datos.shape}")
        pixeles = np.ascontiguousarray(datos, dtype=np.uint8)
        mensaje = {
            "tipo": "pixeles",
            "alto": int(pixeles.shape[0]),
            "ancho": int(pixeles.shape[1]),
            "datos": base64.b64encode(pixeles.tobytes()).decode("ascii"),
        }
    else:
        mensaje = {"tipo": "json", "datos": datos}
    try:
        return json.dumps(mensaje).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise TransportError(f"No se pudo serializar el mensaje: {e}")


def decodificar(cuerpo):
    try:
        mensaje = json.loads(cuerpo)
        tipo = mensaje["tipo"]
        if tipo == "kernel":
            return Kernel.desde_dict(mensaje["datos"])
        if tipo == "info":
            return SectionInfo.desde_dict(mensaje["datos"])
        if tipo == "pixeles":
            alto, ancho = int(mensaje["alto"]), int(mensaje["ancho"])
            crudo = base64.b64decode(mensaje["datos"], validate=True)
            if len(crudo) != alto * ancho:
                raise TransportError(
                    f"Mensaje de pixeles declara {alto}x{ancho} y trae {len(crudo)} bytes"
                )
            return np.frombuffer(crudo, dtype=np.uint8).reshape(alto, ancho).copy()
        if tipo == "json":
            return mensaje["datos"]
    except TransportError:
        raise
    except (ConfigurationError, ValueError, KeyError, TypeError) as e:
        raise TransportError(f"Mensaje mal formado: {e}")
    raise TransportError(f"Tipo de mensaje desconocido: {tipo!r}")
