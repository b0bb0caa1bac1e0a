import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from posapp.services import file_service
from posapp.validation import ValidationError


def _upload(name, mimetype, size=64):
    return FileStorage(stream=io.BytesIO(b"x" * size), filename=name, content_type=mimetype)


@pytest.mark.parametrize(
    "name,mimetype",
    [("a.jpg", "image/jpeg"), ("a.JPEG", "image/jpeg"), ("a.png", "image/png"), ("a.gif", "image/gif")],
)
def test_accepts_allowed_images(db_session, name, mimetype):
    path = file_service.upload_image(_upload(name, mimetype))
    assert path.startswith("/uploads/")
    assert path.endswith(os.path.splitext(name)[1].lower())
    assert file_service.file_exists(path)


@pytest.mark.parametrize(
    "name,mimetype",
    [("a.bmp", "image/bmp"), ("a.png", "text/plain"), ("script.py", "image/png"), ("", "image/png")],
)
def test_rejects_disallowed_files(db_session, name, mimetype):
    with pytest.raises(ValidationError):
        file_service.upload_image(_upload(name, mimetype))


def test_rejects_oversized_file(app, db_session):
    big = _upload("big.png", "image/png", size=app.config["MAX_IMAGE_SIZE"] + 1)
    with pytest.raises(ValidationError) as exc:
        file_service.upload_image(big)
    assert "5MB" in exc.value.message


def test_missing_file(db_session):
    with pytest.raises(ValidationError):
        file_service.validate_image_file(None)


def test_delete_image(db_session):
    path = file_service.upload_image(_upload("a.png", "image/png"))
    assert file_service.delete_image(path) is True
    assert file_service.delete_image(path) is False
    assert file_service.delete_image(None) is False


def test_absolute_path_ignores_directories(app):
    resolved = file_service.absolute_path("/uploads/../../etc/passwd")
    assert resolved == os.path.join(app.config["UPLOAD_FOLDER"], "passwd")
