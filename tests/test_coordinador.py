"""
Tests del coordinador
=====================

Los workers "falsos" responden antes de que el coordinador empiece: los
buzones en memoria guardan los mensajes hasta que alguien los pide.
"""

import logging
import threading

import numpy as np
import pytest

from sobel_distribuido.config import Configuracion
from sobel_distribuido.coordinador import Coordinador, Estado
from sobel_distribuido.errores import ConfigurationError, ReconstructionError, TransportError
from sobel_distribuido.kernel import kernel_sobel
from sobel_distribuido.local import procesar_local
from sobel_distribuido.modelos import RasterImage, ResultSection, SectionInfo
from sobel_distribuido.particion import calcular_secciones, extraer_seccion
from sobel_distribuido.reconstruccion import reconstruir_imagen
from sobel_distribuido.sobel import aplicar_sobel
from sobel_distribuido.transporte import (
    TAG_INFO_SECCION,
    TAG_MASCARA,
    TAG_RESULTADO,
    TAG_SECCION_IMAGEN,
    GrupoMemoria,
)


def responder(transporte, imagen, info, kernel):
    pixeles = aplicar_sobel(extraer_seccion(imagen, info), kernel, hilos=1)
    transporte.enviar(0, TAG_RESULTADO, info)
    transporte.enviar(0, TAG_RESULTADO, pixeles)


def esperado(imagen, n_workers, kernel):
    secciones = calcular_secciones(imagen.alto, imagen.ancho, n_workers)
    resultados = [
        ResultSection(info=info, pixeles=aplicar_sobel(extraer_seccion(imagen, info), kernel, hilos=1))
        for info in secciones
    ]
    return reconstruir_imagen(resultados, secciones, imagen.ancho, imagen.alto).pixeles


class TestDespacho:

    def test_mascara_info_y_pixeles_en_orden(self, grupo, imagen_aleatoria, kernel):
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        for transporte, info in ((w2, secciones[1]), (w1, secciones[0])):
            responder(transporte, imagen_aleatoria, info, kernel)

        Coordinador(coordinador, kernel=kernel).ejecutar(imagen_aleatoria)

        for rank, info in ((1, secciones[0]), (2, secciones[1])):
            mensajes = list(grupo.buzones[rank]._mensajes)
            assert [(origen, tag) for origen, tag, _ in mensajes] == [
                (0, TAG_MASCARA), (0, TAG_INFO_SECCION), (0, TAG_SECCION_IMAGEN),
            ]
            assert mensajes[0][2] == kernel
            assert mensajes[1][2] == info
            assert np.array_equal(mensajes[2][2], extraer_seccion(imagen_aleatoria, info))


class TestRecoleccion:

    def test_orden_de_llegada_no_importa(self, grupo, imagen_aleatoria, kernel):
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w2, imagen_aleatoria, secciones[1], kernel)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        c = Coordinador(coordinador, kernel=kernel)

        final = c.ejecutar(imagen_aleatoria)

        assert c.estado is Estado.DONE
        assert c.error is None
        assert np.array_equal(final.pixeles, esperado(imagen_aleatoria, 2, kernel))

    def test_id_repetido_se_registra_y_falla_sin_imagen(self, grupo, imagen_aleatoria, kernel, caplog):
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        responder(w2, imagen_aleatoria, secciones[0], kernel)
        c = Coordinador(coordinador, kernel=kernel)

        with caplog.at_level(logging.WARNING), pytest.raises(ReconstructionError, match=r"\[1\]"):
            c.ejecutar(imagen_aleatoria)

        assert c.estado is Estado.FAILED
        assert isinstance(c.error, ReconstructionError)
        assert "repetida" in caplog.text

    def test_id_fuera_de_rango(self, grupo, imagen_aleatoria, kernel, caplog):
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        w2.enviar(0, TAG_RESULTADO, SectionInfo(section_id=9, start_row=0, num_rows=1, width=1))
        w2.enviar(0, TAG_RESULTADO, np.zeros((1, 1), dtype=np.uint8))
        c = Coordinador(coordinador, kernel=kernel)

        with caplog.at_level(logging.ERROR), pytest.raises(ReconstructionError):
            c.ejecutar(imagen_aleatoria)

        assert "invalido: 9" in caplog.text
        assert c.estado is Estado.FAILED

    def test_tamaño_recibido_distinto(self, grupo, imagen_aleatoria, kernel):
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        w2.enviar(0, TAG_RESULTADO, secciones[1])
        w2.enviar(0, TAG_RESULTADO, np.zeros((2, 2), dtype=np.uint8))

        with pytest.raises(ReconstructionError):
            Coordinador(coordinador, kernel=kernel).ejecutar(imagen_aleatoria)

    def test_timeout_opcional(self, grupo, imagen_aleatoria, kernel):
        coordinador, w1, _ = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        c = Coordinador(coordinador, kernel=kernel, timeout=0.05)

        with pytest.raises(TransportError):
            c.ejecutar(imagen_aleatoria)

        assert c.estado is Estado.FAILED


class TestEjecucion:

    def test_sin_workers(self, imagen_aleatoria):
        c = Coordinador(GrupoMemoria(1).transporte(0))

        with pytest.raises(ConfigurationError, match="No hay workers"):
            c.ejecutar(imagen_aleatoria)

        assert c.estado is Estado.FAILED

    def test_mas_workers_que_filas(self, kernel):
        imagen = RasterImage(np.zeros((2, 5), dtype=np.uint8))

        with pytest.raises(ConfigurationError):
            Coordinador(GrupoMemoria(4).transporte(0), kernel=kernel).ejecutar(imagen)

    def test_kernel_se_resuelve_una_vez(self, grupo, imagen_aleatoria, kernel, monkeypatch):
        llamadas = []

        def resolver(fuente, config=None):
            llamadas.append(fuente)
            return kernel

        monkeypatch.setattr("sobel_distribuido.coordinador.resolver_kernel", resolver)
        coordinador, w1, w2 = grupo.transportes()
        secciones = calcular_secciones(imagen_aleatoria.alto, imagen_aleatoria.ancho, 2)
        responder(w1, imagen_aleatoria, secciones[0], kernel)
        responder(w2, imagen_aleatoria, secciones[1], kernel)

        Coordinador(coordinador, fuente_kernel="{}").ejecutar(imagen_aleatoria)

        assert llamadas == ["{}"]

    def test_error_inesperado_deja_estado_fallido(self, grupo, imagen_aleatoria, monkeypatch):
        def resolver(fuente, config=None):
            raise RuntimeError("sin kernel")

        monkeypatch.setattr("sobel_distribuido.coordinador.resolver_kernel", resolver)
        coordinador = Coordinador(grupo.transporte(0))

        with pytest.raises(RuntimeError):
            coordinador.ejecutar(imagen_aleatoria)
        assert coordinador.estado is Estado.FAILED
        assert isinstance(coordinador.error, RuntimeError)

    def test_ejecucion_local_no_queda_colgada_si_falla_antes_de_despachar(
        self, imagen_aleatoria, monkeypatch
    ):
        def resolver(fuente, config=None):
            raise RuntimeError("sin kernel")

        monkeypatch.setattr("sobel_distribuido.coordinador.resolver_kernel", resolver)
        errores = []

        def ejecutar():
            try:
                procesar_local(imagen_aleatoria, 3, hilos=1)
            except RuntimeError as e:
                errores.append(e)

        hilo = threading.Thread(target=ejecutar, daemon=True)
        hilo.start()
        hilo.join(5)

        assert not hilo.is_alive()
        assert len(errores) == 1

    def test_archivo_de_kernel_ilegible_usa_sobel(self, tmp_path):
        ruta = tmp_path / "kernel.json"
        ruta.write_bytes(b"\xff\xfe\x00basura")
        imagen = RasterImage(np.arange(80, dtype=np.uint8).reshape(8, 10))

        final = procesar_local(imagen, 2, config=Configuracion(kernel_archivo=str(ruta)), hilos=1)

        assert np.array_equal(final.pixeles, esperado(imagen, 2, kernel_sobel()))

    @pytest.mark.parametrize("n_workers", [1, 2, 3, 7])
    def test_ejecucion_local_completa(self, imagen_aleatoria, kernel, n_workers):
        final = procesar_local(imagen_aleatoria, n_workers, kernel=kernel, hilos=2)

        assert (final.ancho, final.alto) == (imagen_aleatoria.ancho, imagen_aleatoria.alto)
        assert np.array_equal(final.pixeles, esperado(imagen_aleatoria, n_workers, kernel))

    def test_ejecucion_local_sin_workers(self, imagen_aleatoria):
        with pytest.raises(ConfigurationError):
            procesar_local(imagen_aleatoria, 0)

    def test_imagen_escalon(self, imagen_escalon, kernel):
        final = procesar_local(imagen_escalon, 3, kernel=kernel, hilos=1).pixeles

        assert (final[:, 4] == 255).all()
        assert (final[:, 5] == 255).all()
        assert not final[:, [0, 9]].any()
