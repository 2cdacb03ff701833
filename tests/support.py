# Shared helpers for the API tests: deterministic settings, a mongomock-backed
# app inside a scoped TestClient, seeded admin accounts and tiny image payloads.

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import mongomock
from fastapi.testclient import TestClient

from auth import create_access_token, get_password_hash
from database import create_document
from main import create_app
from schemas import Admin
from settings import Settings
from storage import StorageBackend

API = "/api/v1"

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


def build_test_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "app_name": "Test Cleaning API",
        "environment": "test",
        "log_level": "WARNING",
        "jwt_secret": "test-access-secret",
        "jwt_refresh_secret": "test-refresh-secret",
        "upload_dir": str(tmp_path / "uploads"),
        "allowed_origins": ["http://localhost:3000"],
    }
    values.update(overrides)
    return Settings(**values)


def new_database():
    return mongomock.MongoClient()["victoria_test"]


@contextmanager
def api_test_client(
    settings: Settings,
    database=None,
    storage: Optional[StorageBackend] = None,
) -> Iterator[TestClient]:
    app = create_app(settings, database=database if database is not None else new_database(), storage=storage)
    with TestClient(app) as client:
        yield client


def create_admin(
    db,
    *,
    email: str = "owner@example.com",
    password: str = "secret123",
    role: str = "admin",
    full_name: str = "Site Owner",
) -> Dict[str, Any]:
    admin = Admin(full_name=full_name, email=email, password_hash=get_password_hash(password), role=role)
    return create_document(db, "admins", admin)


def bearer(admin: Dict[str, Any], settings: Settings) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(admin, settings)}"}


def png(name: str = "photo.png") -> tuple:
    return (name, PNG_BYTES, "image/png")


def jpeg(name: str = "photo.jpg") -> tuple:
    return (name, JPEG_BYTES, "image/jpeg")


def stored_name(url: str) -> str:
    return Path(urlparse(url).path).name


def upload_path(url: str) -> str:
    return urlparse(url).path


def stored_files(settings: Settings) -> list:
    directory = Path(settings.upload_dir)
    if not directory.exists():
        return []
    return sorted(path.name for path in directory.iterdir())
