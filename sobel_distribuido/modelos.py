from dataclasses import dataclass

import numpy as np

from .errores import ConfigurationError, DataError


def _solo_lectura(arreglo, dtype):
    copia = np.array(arreglo, dtype=dtype, copy=True)
    copia.setflags(write=False)
    return copia


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Imagen en escala de grises, 1 byte por pixel, filas contiguas.

    Los pixeles se copian al construirla y quedan de solo lectura.
    """

    pixeles: np.ndarray

    def __post_init__(self):
        arreglo = np.asarray(self.pixeles)
        if arreglo.ndim != 2:
            raise DataError(f"Se esperaba una imagen 2D en escala de grises, forma recibida: {arreglo.shape}")
        if arreglo.shape[0] < 1 or arreglo.shape[1] < 1:
            raise DataError(f"Imagen vacia: {arreglo.shape}")
        object.__setattr__(self, "pixeles", _solo_lectura(arreglo, np.uint8))

    @property
    def ancho(self):
        return int(self.pixeles.shape[1])

    @property
    def alto(self):
        return int(self.pixeles.shape[0])

    @classmethod
    def desde_bytes(cls, ancho, alto, datos):
        if len(datos) != ancho * alto:
            raise DataError(f"Se esperaban {ancho * alto} bytes para {ancho}x{alto}, recibidos {len(datos)}")
        return cls(np.frombuffer(datos, dtype=np.uint8).reshape(alto, ancho))

    def a_bytes(self):
        return self.pixeles.tobytes()


@dataclass(frozen=True)
class SectionInfo:
    section_id: int
    start_row: int
    num_rows: int
    width: int

    @property
    def end_row(self):
        """Fila siguiente a la ultima de la seccion."""
        return self.start_row + self.num_rows

    def a_dict(self):
        return {
            "section_id": self.section_id,
            "start_row": self.start_row,
            "num_rows": self.num_rows,
            "width": self.width,
        }

    @classmethod
    def desde_dict(cls, datos):
        return cls(
            section_id=int(datos["section_id"]),
            start_row=int(datos["start_row"]),
            num_rows=int(datos["num_rows"]),
            width=int(datos["width"]),
        )


@dataclass(frozen=True)
class Kernel:
    """Par de mascaras 3x3 (Gx, Gy). Inmutable durante toda la ejecucion."""

    gx: np.ndarray
    gy: np.ndarray

    def __post_init__(self):
        for nombre in ("gx", "gy"):
            try:
                mascara = np.asarray(getattr(self, nombre), dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"La mascara {nombre} no es numerica: {e}")
            if mascara.shape != (3, 3):
                raise ConfigurationError(f"La mascara {nombre} debe ser 3x3, forma recibida: {mascara.shape}")
            if not np.all(np.isfinite(mascara)):
                raise ConfigurationError(f"La mascara {nombre} contiene valores no finitos")
            object.__setattr__(self, nombre, _solo_lectura(mascara, np.float64))

    def a_dict(self):
        return {"gx": self.gx.tolist(), "gy": self.gy.tolist()}

    @classmethod
    def desde_dict(cls, datos):
        return cls(gx=datos["gx"], gy=datos["gy"])

    def __eq__(self, otro):
        if not isinstance(otro, Kernel):
            return NotImplemented
        return np.array_equal(self.gx, otro.gx) and np.array_equal(self.gy, otro.gy)

    def __hash__(self):
        return hash((self.gx.tobytes(), self.gy.tobytes()))


@dataclass(frozen=True, eq=False)
class WorkerTask:
    info: SectionInfo
    pixeles: np.ndarray
    kernel: Kernel


@dataclass(frozen=True, eq=False)
class ResultSection:
    info: SectionInfo
    pixeles: np.ndarray
