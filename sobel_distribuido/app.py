import io
import logging

from flask import Flask, render_template_string, request, send_file

from .config import cargar_configuracion, configurar_logging
from .errores import ConfigurationError, DataError, SobelDistribuidoError
from .imagen_io import codificar_png, decodificar_imagen
from .local import procesar_local

logger = logging.getLogger(__name__)

app = Flask(__name__)

HTML_FORM = """
<!doctype html>
<html>
  <head><title>Filtro Sobel</title></head>
  <body>
    <h1>Subir imagen para aplicar filtro</h1>
    <form method="POST" enctype="multipart/form-data">
      Imagen: <input type="file" name="imagen" accept="image/*" required><br>
      Nro de Workers: <input type="number" name="nro_workers" min="1" required><br>
      <input type="submit" value="Procesar Imagen">
    </form>
  </body>
</html>
"""


@app.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return render_template_string(HTML_FORM)

    if "imagen" not in request.files or "nro_workers" not in request.form:
        return "Faltan parámetros.", 400

    file = request.files["imagen"]
    if file.filename == "":
        return "No se seleccionó archivo.", 400
    try:
        n = int(request.form["nro_workers"])
    except ValueError:
        return "nro_workers debe ser un entero.", 400

    try:
        imagen = decodificar_imagen(file.read())
        resultado = procesar_local(imagen, n, config=app.config.get("SOBEL_CONFIG"))
    except (ConfigurationError, DataError) as e:
        return f"Parámetros inválidos: {e}", 400
    except SobelDistribuidoError as e:
        logger.error("Fallo al procesar la imagen: %s", e)
        return f"Error interno: {e}", 500

    return send_file(
        io.BytesIO(codificar_png(resultado)),
        as_attachment=True,
        download_name="resultado.png",
        mimetype="image/png",
    )


def main():
    config = cargar_configuracion()
    configurar_logging(config.log_level)
    app.config["SOBEL_CONFIG"] = config
    app.run(host="0.0.0.0", port=80)


if __name__ == "__main__":
    main()
