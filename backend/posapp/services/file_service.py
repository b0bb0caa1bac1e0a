# Overview: Image storage for product pictures under UPLOAD_FOLDER.

from __future__ import annotations

import logging
import os
import time
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"


def upload_dir() -> str:
    path = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(path, exist_ok=True)
    return path


def _extension(filename: str | None) -> str:
    return os.path.splitext(secure_filename(filename or ""))[1].lower()


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_image_file(file: FileStorage | None) -> None:
    """Reject anything over MAX_IMAGE_SIZE or outside the jpg/jpeg/png/gif allowlist."""
    if file is None or not file.filename:
        raise ValidationError("No file provided")

    cfg = current_app.config
    if _stream_size(file) > cfg["MAX_IMAGE_SIZE"]:
        raise ValidationError("File size exceeds 5MB limit")

    if _extension(file.filename) not in cfg["ALLOWED_IMAGE_EXTENSIONS"]:
        raise ValidationError("Only JPG, PNG, and GIF files are allowed")

    if file.mimetype not in cfg["ALLOWED_IMAGE_MIME_TYPES"]:
        raise ValidationError("Invalid file type")


def upload_image(file: FileStorage | None) -> str:
    """Store the file under a generated name and return its public path (/uploads/<name>)."""
    validate_image_file(file)
    filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{_extension(file.filename)}"
    file.stream.seek(0)
    file.save(os.path.join(upload_dir(), filename))
    logger.info("Stored image %s", filename)
    return f"{PUBLIC_PREFIX}{filename}"


def absolute_path(image_path: str | None) -> str | None:
    """Map a stored /uploads/<name> path to the file on disk; only the basename is trusted."""
    if not image_path:
        return None
    return os.path.join(current_app.config["UPLOAD_FOLDER"], os.path.basename(image_path))


def file_exists(image_path: str | None) -> bool:
    path = absolute_path(image_path)
    return bool(path) and os.path.isfile(path)


def delete_image(image_path: str | None) -> bool:
    """
    Remove a stored image. Returns False when there was nothing to delete.

    Failures are logged, not raised: a leftover file must never undo a
    committed database change.
    """
    path = absolute_path(image_path)
    if not path:
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("Failed to delete image %s", image_path)
        return False
    logger.info("Deleted image %s", os.path.basename(path))
    return True
