# backend/posapp/config.py
from __future__ import annotations
import os
import tempfile


BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens are signed with JWT_SECRET and expire after a fixed number of days
    JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key-change-in-production")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRATION_DAYS = int(os.environ.get("JWT_EXPIRATION_DAYS", "7"))

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(BACKEND_DIR, "uploads"))
    MAX_IMAGE_SIZE = 5 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
    ALLOWED_IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif"}
    # Multipart bodies carry at most one image plus form fields
    MAX_CONTENT_LENGTH = 6 * 1024 * 1024

    DEFAULT_TAX_RATE = 10
    DEFAULT_PRODUCT_CATEGORIES = ["Beverages", "Food", "Desserts", "Snacks"]

    CORS_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET = "test-secret"
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), "posapp-test-uploads")
    LOG_LEVEL = "WARNING"
