# upload_blueprint.py
import os
import re
from typing import Optional

from flask import Blueprint, current_app, jsonify, request
from PIL import Image, UnidentifiedImageError
from werkzeug.exceptions import RequestEntityTooLarge

# ----------------- Configuration -----------------
upload_bp = Blueprint("upload_bp", __name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
MAX_WIDTH, MAX_HEIGHT = 800, 600
JPEG_QUALITY = 85
PNG_COMPRESS_LEVEL = 9

UPLOAD_PATH = "/api/upload-product-image"

_PRODUCT_ID_STRIP = re.compile(r"[^a-z0-9\-_]")


def fail(message: str, status: int = 200):
    return jsonify({"success": False, "message": message}), status


def sanitize_product_id(value: Optional[str]) -> str:
    return _PRODUCT_ID_STRIP.sub("", (value or "").lower())


def file_size(storage) -> int:
    stream = storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def is_valid_image(storage) -> bool:
    try:
        with Image.open(storage.stream) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError):
        return False
    finally:
        storage.stream.seek(0)
    return True


# ----------------- Resize -----------------
def optimize_image(path: str, max_width: int = MAX_WIDTH, max_height: int = MAX_HEIGHT) -> bool:
    """Shrink in place to fit max_width x max_height. True only if the file was rewritten."""
    log = current_app.logger
    try:
        with Image.open(path) as img:
            fmt = img.format
            width, height = img.size
            log.debug(f"Original dimensions: {width}x{height}")
            if width <= max_width and height <= max_height:
                return False
            if fmt not in ("JPEG", "PNG", "GIF"):
                log.info(f"Unsupported image type for optimization: {fmt}")
                return False

            ratio = min(max_width / width, max_height / height)
            new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
            log.debug(f"New dimensions: {new_size[0]}x{new_size[1]}")

            save_kwargs = {}
            if fmt == "JPEG":
                resized = img.convert("RGB").resize(new_size, Image.Resampling.LANCZOS)
                save_kwargs["quality"] = JPEG_QUALITY
            elif fmt == "PNG":
                src = img if img.mode in ("RGB", "RGBA", "L", "LA") else img.convert("RGBA")
                resized = src.resize(new_size, Image.Resampling.LANCZOS)
                save_kwargs["compress_level"] = PNG_COMPRESS_LEVEL
            else:
                # palette resize keeps the transparent index intact
                resized = img.resize(new_size, Image.Resampling.NEAREST)
                if "transparency" in img.info:
                    save_kwargs["transparency"] = img.info["transparency"]
        resized.save(path, fmt, **save_kwargs)
    except (OSError, ValueError) as e:
        log.error(f"Image optimization failed for {path}: {e}")
        return False
    return True


# ----------------- Route -----------------
@upload_bp.app_errorhandler(RequestEntityTooLarge)
def upload_too_large(e):
    # bodies over MAX_CONTENT_LENGTH never reach the view
    if request.path != UPLOAD_PATH:
        return e
    current_app.logger.warning(f"Upload rejected above MAX_CONTENT_LENGTH: {request.content_length}")
    return fail("File troppo grande. Massimo 5MB consentiti")


@upload_bp.route(UPLOAD_PATH,
                 methods=["POST", "OPTIONS", "GET", "PUT", "PATCH", "DELETE"])
def upload_product_image():
    log = current_app.logger
    if request.method == "OPTIONS":
        return "", 200
    if request.method != "POST":
        log.warning(f"Invalid method: {request.method}")
        return fail("Metodo non consentito", 405)

    storage = request.files.get("productImage")
    if storage is None or not storage.filename:
        return fail("Nessun file selezionato")

    size = file_size(storage)
    log.info(f"File info - Name: {storage.filename}, Size: {size}, Type: {storage.mimetype}")
    if size > MAX_FILE_SIZE:
        log.warning(f"File too large: {size} > {MAX_FILE_SIZE}")
        return fail("File troppo grande. Massimo 5MB consentiti")

    if storage.mimetype not in ALLOWED_TYPES:
        return fail("Tipo di file non consentito. Usa JPG, PNG, GIF o WebP")

    extension = os.path.splitext(storage.filename)[1].lstrip(".").lower()
    if extension not in ALLOWED_EXTENSIONS:
        return fail("Estensione file non consentita")

    product_id = sanitize_product_id(request.form.get("productId"))
    if not product_id:
        return fail("ID prodotto mancante o non valido")

    if not is_valid_image(storage):
        return fail("Il file non è un'immagine valida")

    upload_dir = current_app.config["PRODUCT_IMAGE_DIR"]
    try:
        os.makedirs(upload_dir, exist_ok=True)
    except OSError as e:
        log.error(f"Failed to create upload directory {upload_dir}: {e}")
        return fail("Impossibile creare la cartella di destinazione")

    file_name = f"{product_id}.{extension}"
    file_path = os.path.join(upload_dir, file_name)
    try:
        storage.save(file_path)
    except OSError as e:
        log.error(f"Failed to store upload to {file_path}: {e}")
        return fail("Errore nel salvataggio del file")

    optimized = optimize_image(file_path)
    log.info(f"Stored {file_path} (optimized={optimized})")
    return jsonify({
        "success": True,
        "message": "Immagine caricata con successo",
        "fileName": file_name,
        "filePath": f"{current_app.config['PRODUCT_IMAGE_URL_PREFIX'].rstrip('/')}/{file_name}",
        "optimized": optimized,
    })
