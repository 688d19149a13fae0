"""
Fixtures compartidas
====================

- imagen_aleatoria: imagen 2D reproducible (semilla fija)
- imagen_escalon: mitad izquierda en 0, mitad derecha en 255
- grupo: GrupoMemoria de 1 coordinador + 2 workers
"""

import numpy as np
import pytest

from sobel_distribuido.kernel import kernel_sobel
from sobel_distribuido.modelos import RasterImage
from sobel_distribuido.transporte import GrupoMemoria


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def imagen_aleatoria(rng):
    return RasterImage(rng.integers(0, 256, size=(37, 23), dtype=np.uint8))


@pytest.fixture
def imagen_escalon():
    pixeles = np.zeros((12, 10), dtype=np.uint8)
    pixeles[:, 5:] = 255
    return RasterImage(pixeles)


@pytest.fixture
def kernel():
    return kernel_sobel()


@pytest.fixture
def grupo():
    return GrupoMemoria(3)
