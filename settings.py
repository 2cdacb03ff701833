"""
Runtime settings.

Values come from `.env` and the process environment. A Settings object is built
once at startup and handed to `create_app`; nothing else reads the environment.
"""
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

STORAGE_BACKENDS = ("local", "cloudinary")


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    app_name: str = "Victoria Cleaning API"
    environment: str = "production"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3005
    api_prefix: str = "/api/v1"

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "victoria"

    jwt_secret: str = "dev-secret-change"
    jwt_refresh_secret: str = "dev-refresh-secret-change"
    access_token_expires_seconds: int = 3600
    refresh_token_expires_seconds: int = 86400

    allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    storage_backend: str = "local"
    upload_dir: str = "uploads"
    base_url: Optional[str] = None
    max_upload_bytes: int = 100 * 1024 * 1024

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "victoria"

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("api_prefix must start with '/'.")
        return value.rstrip("/")

    @field_validator("base_url")
    @classmethod
    def strip_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip("/")

    @field_validator(
        "port",
        "access_token_expires_seconds",
        "refresh_token_expires_seconds",
        "max_upload_bytes",
    )
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0.")
        return value

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in STORAGE_BACKENDS:
            raise ValueError(f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}")
        return value

    @model_validator(mode="after")
    def require_cloudinary_credentials(self) -> "Settings":
        if self.storage_backend == "cloudinary":
            missing = [
                name
                for name in ("cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Cloudinary storage requires: {', '.join(missing)}")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def _env_list(name: str) -> Optional[List[str]]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


# env var -> Settings field
ENV_FIELDS = {
    "APP_NAME": "app_name",
    "ENV": "environment",
    "LOG_LEVEL": "log_level",
    "HOST": "host",
    "PORT": "port",
    "API_PREFIX": "api_prefix",
    "MONGO_URI": "mongo_uri",
    "MONGO_DB_NAME": "mongo_db_name",
    "JWT_SECRET": "jwt_secret",
    "JWT_REFRESH_SECRET": "jwt_refresh_secret",
    "JWT_ACCESS_EXPIRES_IN": "access_token_expires_seconds",
    "JWT_REFRESH_EXPIRES_IN": "refresh_token_expires_seconds",
    "STORAGE_BACKEND": "storage_backend",
    "UPLOAD_DIR": "upload_dir",
    "BASE_URL": "base_url",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "CLOUDINARY_CLOUD_NAME": "cloudinary_cloud_name",
    "CLOUDINARY_API_KEY": "cloudinary_api_key",
    "CLOUDINARY_API_SECRET": "cloudinary_api_secret",
    "CLOUDINARY_FOLDER": "cloudinary_folder",
}


def load_settings(*, load_env: bool = True) -> Settings:
    """Load and validate settings from `.env` and the process environment."""

    if load_env:
        load_dotenv()

    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()

    origins = _env_list("ALLOWED_ORIGINS")
    if origins is not None:
        values["allowed_origins"] = origins

    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
