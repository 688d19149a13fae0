class SobelDistribuidoError(Exception):
    """Base de todos los errores del sistema."""


class ConfigurationError(SobelDistribuidoError):
    """Cantidad de workers invalida o configuracion mal formada."""


class TransportError(SobelDistribuidoError):
    """Fallo al enviar/recibir un mensaje o mensaje mal formado."""


class DataError(SobelDistribuidoError):
    """Imagen ilegible o tamaño declarado distinto al recibido."""


class ReconstructionError(SobelDistribuidoError):
    """Falta una seccion o su id esta fuera de rango."""
