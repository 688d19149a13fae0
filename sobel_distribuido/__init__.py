from .coordinador import Coordinador, Estado
from .errores import (
    ConfigurationError,
    DataError,
    ReconstructionError,
    SobelDistribuidoError,
    TransportError,
)
from .kernel import SOBEL_X, SOBEL_Y, resolver_kernel
from .local import procesar_local
from .modelos import Kernel, RasterImage, ResultSection, SectionInfo, WorkerTask
from .particion import calcular_secciones, extraer_seccion
from .reconstruccion import reconstruir_imagen
from .sobel import aplicar_sobel, calcular_hilos_locales

__version__ = "0.1.0"
