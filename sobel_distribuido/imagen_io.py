import logging

import cv2
import numpy as np

from .errores import DataError
from .modelos import RasterImage

logger = logging.getLogger(__name__)


def cargar_imagen_gris(ruta):
    img = cv2.imread(str(ruta), cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise DataError(f"No se pudo leer la imagen: {ruta}")
    logger.info("Imagen cargada: %s (%dx%d)", ruta, img.shape[1], img.shape[0])
    return RasterImage(img)


def decodificar_imagen(datos):
    try:
        img = cv2.imdecode(np.frombuffer(datos, np.uint8), cv2.IMREAD_GRAYSCALE)
    except cv2.error as e:
        raise DataError(f"No se pudo decodificar la imagen: {e}")
    if img is None:
        raise DataError("El archivo recibido no es una imagen valida")
    return RasterImage(img)


def guardar_imagen(ruta, imagen):
    try:
        ok = cv2.imwrite(str(ruta), imagen.pixeles)
    except cv2.error as e:
        raise DataError(f"No se pudo guardar la imagen en {ruta}: {e}")
    if not ok:
        raise DataError(f"No se pudo guardar la imagen en {ruta}")
    logger.info("Imagen guardada en: %s", ruta)


def codificar_png(imagen):
    ok, buffer = cv2.imencode(".png", imagen.pixeles)
    if not ok:
        raise DataError("No se pudo codificar la imagen como PNG")
    return buffer.tobytes()
