import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .errores import DataError
from .modelos import ResultSection

logger = logging.getLogger(__name__)

PORCENTAJE_NUCLEOS = 75


def calcular_hilos_locales(nucleos=None):
    """Hilos a usar dentro de un worker: 75% de los nucleos logicos, minimo 1."""
    if nucleos is None:
        nucleos = os.cpu_count() or 1
    return max(1, (nucleos * PORCENTAJE_NUCLEOS) // 100)


def repartir_filas(alto, partes):
    """Rangos [inicio, fin) disjuntos que cubren [0, alto)."""
    partes = max(1, min(partes, alto))
    limites = np.linspace(0, alto, partes + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(limites[:-1], limites[1:]) if b > a]


def _convolucionar(relleno, kernel, inicio, fin, ancho):
    # relleno tiene un borde de ceros de 1 pixel: la muestra (x, y) esta en [y + 1, x + 1]
    gx = np.zeros((fin - inicio, ancho - 2), dtype=np.float64)
    gy = np.zeros_like(gx)
    for ky in (-1, 0, 1):
        filas = slice(inicio + ky + 1, fin + ky + 1)
        for kx in (-1, 0, 1):
            ventana = relleno[filas, kx + 2:ancho + kx]
            gx += kernel.gx[ky + 1, kx + 1] * ventana
            gy += kernel.gy[ky + 1, kx + 1] * ventana
    magnitud = np.sqrt(gx * gx + gy * gy)
    return np.clip(np.floor(magnitud + 0.5), 0, 255).astype(np.uint8)


def aplicar_sobel(pixeles, kernel, hilos=None):
    """Magnitud del gradiente de una seccion.

    Las muestras fuera de la seccion valen cero, tambien en las filas que son
    costuras internas de la imagen original; la reconstruccion corrige eso.
    Las columnas 0 y ancho-1 quedan en cero. El resultado no depende de
    cuantos hilos se usen.
    """
    imagen = np.asarray(pixeles)
    if imagen.ndim != 2:
        raise DataError(f"Se esperaba una seccion 2D, forma recibida: {imagen.shape}")
    alto, ancho = imagen.shape
    salida = np.zeros((alto, ancho), dtype=np.uint8)
    if alto < 1 or ancho < 3:
        return salida

    relleno = np.pad(imagen.astype(np.float64), 1, mode="constant", constant_values=0)
    if hilos is None:
        hilos = calcular_hilos_locales()
    rangos = repartir_filas(alto, hilos)

    def procesar_rango(rango):
        inicio, fin = rango
        salida[inicio:fin, 1:ancho - 1] = _convolucionar(relleno, kernel, inicio, fin, ancho)

    if len(rangos) == 1:
        procesar_rango(rangos[0])
    else:
        with ThreadPoolExecutor(max_workers=len(rangos)) as pool:
            list(pool.map(procesar_rango, rangos))
    return salida


def procesar_tarea(tarea, hilos=None):
    """WorkerTask -> ResultSection."""
    info = tarea.info
    if tarea.pixeles.shape != (info.num_rows, info.width):
        raise DataError(
            f"Seccion {info.section_id}: se declararon {info.num_rows}x{info.width} pixeles "
            f"y se recibieron {tarea.pixeles.shape}"
        )
    inicio = time.time()
    resultado = aplicar_sobel(tarea.pixeles, tarea.kernel, hilos=hilos)
    logger.info(
        "Seccion %d procesada (%dx%d) en %.3fs",
        info.section_id, info.width, info.num_rows, time.time() - inicio,
    )
    return ResultSection(info=info, pixeles=resultado)
