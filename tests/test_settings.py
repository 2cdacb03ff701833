# Environment loading and validation of runtime settings.

from __future__ import annotations

import pytest

from settings import ENV_FIELDS, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(ENV_FIELDS) + ["ALLOWED_ORIGINS"]:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings(load_env=False)

    assert settings.port == 3005
    assert settings.api_prefix == "/api/v1"
    assert settings.storage_backend == "local"
    assert settings.max_upload_bytes == 100 * 1024 * 1024
    assert settings.allowed_origins == ["http://localhost:3000"]
    assert settings.is_production
    assert not settings.is_development


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("API_PREFIX", "/api/v2/")
    monkeypatch.setenv("BASE_URL", " https://api.example.com/ ")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com,")
    monkeypatch.setenv("STORAGE_BACKEND", "LOCAL")

    settings = load_settings(load_env=False)

    assert settings.port == 8080
    assert settings.is_production
    assert settings.api_prefix == "/api/v2"
    assert settings.base_url == "https://api.example.com"
    assert settings.allowed_origins == ["https://a.example.com", "https://b.example.com"]
    assert settings.storage_backend == "local"


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "  ")
    monkeypatch.setenv("BASE_URL", "")

    settings = load_settings(load_env=False)

    assert settings.port == 3005
    assert settings.base_url is None


@pytest.mark.parametrize(
    "name, value",
    [
        ("API_PREFIX", "api"),
        ("PORT", "0"),
        ("MAX_UPLOAD_BYTES", "-1"),
        ("STORAGE_BACKEND", "s3"),
        ("JWT_ACCESS_EXPIRES_IN", "soon"),
    ],
)
def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match="Invalid environment configuration"):
        load_settings(load_env=False)


def test_cloudinary_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "cloudinary")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")

    with pytest.raises(RuntimeError, match="cloudinary_api_key"):
        load_settings(load_env=False)


def test_cloudinary_with_credentials() -> None:
    settings = Settings(
        storage_backend="cloudinary",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
    )

    assert settings.storage_backend == "cloudinary"
