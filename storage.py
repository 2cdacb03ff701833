"""
Storage backends for uploaded images.

One backend is active per process, chosen by `STORAGE_BACKEND`:

* ``LocalStorage`` writes files into the upload directory, which the app serves
  under ``/uploads``. The locator is the generated file name.
* ``CloudinaryStorage`` pushes files to Cloudinary. The locator is the
  Cloudinary public id, recovered from a stored delivery URL by
  ``public_id_from_url``.

Deletes never raise: a missing object or a failed remote call is logged and
reported as ``False``.
"""
import logging
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol
from urllib.parse import unquote, urlparse

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from errors import StorageFailure, UnsupportedMedia
from settings import Settings
from urls import UrlResolver

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,10}$")
_FIELD_RE = re.compile(r"[^A-Za-z0-9_]")


def normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_media_type(content_type: Optional[str]) -> str:
    media_type = normalize_content_type(content_type)
    if media_type not in ALLOWED_IMAGE_TYPES:
        raise UnsupportedMedia(extra={"receivedType": media_type or None})
    return media_type


@dataclass(frozen=True)
class StoredObject:
    locator: str
    # set when the backend hands out its own absolute URL
    url: Optional[str] = None


class StorageBackend(Protocol):
    name: str

    def save(self, data: bytes, *, field_name: str, original_name: str, content_type: str) -> StoredObject:
        """Persist ``data`` and return its locator."""

    def delete(self, locator: str) -> bool:
        """Remove the object; ``False`` when it was absent or could not be removed."""

    def public_url(self, stored: StoredObject, request: Optional[Request] = None) -> str:
        """URL clients use to fetch ``stored``."""

    def locator_from_url(self, url: Optional[str]) -> Optional[str]:
        """Inverse of ``public_url``; ``None`` for URLs this backend did not produce."""


# ---------------------- Local disk ----------------------
class LocalStorage:
    name = "local"

    def __init__(self, upload_dir: str, resolver: UrlResolver) -> None:
        self.upload_dir = Path(upload_dir)
        self.resolver = resolver

    def ensure_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    @staticmethod
    def generate_name(field_name: str, original_name: str) -> str:
        ext = Path(original_name or "").suffix.lower()
        if not _EXTENSION_RE.match(ext):
            ext = ""
        field = _FIELD_RE.sub("", field_name) or "file"
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}"
        return f"{field}-{suffix}{ext}"

    def path_for(self, locator: str) -> Optional[Path]:
        if not locator or "/" in locator or "\\" in locator or locator in (".", ".."):
            return None
        return self.upload_dir / locator

    def save(self, data: bytes, *, field_name: str, original_name: str, content_type: str) -> StoredObject:
        check_media_type(content_type)
        try:
            directory = self.ensure_dir()
            for _ in range(5):
                filename = self.generate_name(field_name, original_name)
                try:
                    with open(directory / filename, "xb") as f:
                        f.write(data)
                except FileExistsError:
                    continue
                logger.info("Stored upload %s (%d bytes, %s)", filename, len(data), original_name)
                return StoredObject(locator=filename)
        except OSError as exc:
            logger.exception("Could not write upload for field %s to %s", field_name, self.upload_dir)
            raise StorageFailure(detail=str(exc)) from exc
        raise StorageFailure(detail="Could not allocate a unique file name")

    def delete(self, locator: str) -> bool:
        path = self.path_for(locator)
        if path is None:
            logger.warning("Refusing to delete suspicious locator %r", locator)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("File %s already absent", locator)
            return False
        except OSError as exc:
            logger.error("Error deleting file %s: %s", locator, exc)
            return False
        logger.info("File deleted: %s", locator)
        return True

    def public_url(self, stored: StoredObject, request: Optional[Request] = None) -> str:
        return self.resolver.resolve(stored.locator, request)

    def locator_from_url(self, url: Optional[str]) -> Optional[str]:
        return self.resolver.extract_locator(url)


# ---------------------- Cloudinary ----------------------
_VERSION_RE = re.compile(r"^v\d+$")
_TRANSFORMATION_PART_RE = re.compile(r"^[a-z]{1,3}_[^,]+$")
_IMAGE_EXTENSIONS = {
    "jpg", "jpeg", "png", "gif", "webp", "avif", "bmp", "tif", "tiff", "svg", "ico", "heic", "heif", "jfif",
}


def _is_transformation(segment: str) -> bool:
    return all(_TRANSFORMATION_PART_RE.match(part) for part in segment.split(","))


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """Recover the public id from a Cloudinary delivery URL.

    ``https://res.cloudinary.com/<cloud>/image/upload/[<transformations>/]v<version>/<folder>/<id>.<ext>``
    maps to ``<folder>/<id>``. Transformation segments are only recognised when
    they precede the version segment, or lead the path when no version is
    present; the extension is only stripped when it is a known image format.
    """

    if not url:
        return None
    parsed = urlparse(url)
    segments = [unquote(segment) for segment in parsed.path.split("/") if segment]
    if "upload" not in segments:
        return None

    rest = segments[segments.index("upload") + 1:]
    version_at = next((i for i, segment in enumerate(rest) if _VERSION_RE.match(segment)), None)
    if version_at is not None:
        rest = rest[version_at + 1:]
    else:
        while len(rest) > 1 and _is_transformation(rest[0]):
            rest = rest[1:]
    if not rest:
        return None

    stem, dot, ext = rest[-1].rpartition(".")
    if dot and stem and ext.lower() in _IMAGE_EXTENSIONS:
        rest[-1] = stem
    return "/".join(rest)


class CloudinaryStorage:
    """Cloudinary through its Python SDK, with credentials passed on every call."""

    name = "cloudinary"

    def __init__(self, *, cloud_name: str, api_key: str, api_secret: str, folder: str = "") -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder.strip("/")

    @property
    def credentials(self) -> Dict[str, Any]:
        return {"cloud_name": self.cloud_name, "api_key": self.api_key, "api_secret": self.api_secret}

    def _folder_for(self, field_name: str) -> str:
        field = _FIELD_RE.sub("", field_name) or "file"
        return f"{self.folder}/{field}" if self.folder else field

    def save(self, data: bytes, *, field_name: str, original_name: str, content_type: str) -> StoredObject:
        check_media_type(content_type)
        try:
            result = cloudinary.uploader.upload(
                data,
                folder=self._folder_for(field_name),
                resource_type="image",
                **self.credentials,
            )
        except CloudinaryError as exc:
            logger.exception("Cloudinary upload failed for field %s (%s)", field_name, original_name)
            raise StorageFailure(detail=str(exc)) from exc

        public_id = result.get("public_id")
        secure_url = result.get("secure_url")
        if not public_id or not secure_url:
            raise StorageFailure(detail="Cloudinary response is missing public_id or secure_url")
        logger.info("Uploaded %s to Cloudinary as %s", original_name, public_id)
        return StoredObject(locator=public_id, url=secure_url)

    def delete(self, locator: str) -> bool:
        try:
            result = cloudinary.uploader.destroy(locator, invalidate=True, resource_type="image", **self.credentials)
        except CloudinaryError as exc:
            logger.error("Error deleting %s from Cloudinary: %s", locator, exc)
            return False
        if result.get("result") != "ok":
            logger.warning("Cloudinary did not delete %s: %s", locator, result.get("result"))
            return False
        logger.info("Deleted %s from Cloudinary", locator)
        return True

    def delivery_url(self, locator: str) -> str:
        # v1 anchors the public id for public_id_from_url; a trailing image
        # extension gets an explicit format so only that suffix is stripped
        options: Dict[str, Any] = {"cloud_name": self.cloud_name, "secure": True, "version": 1}
        stem, dot, ext = locator.rpartition("/")[2].rpartition(".")
        if dot and stem and ext.lower() in _IMAGE_EXTENSIONS:
            options["format"] = ext
        return cloudinary.CloudinaryImage(locator).build_url(**options)

    def public_url(self, stored: StoredObject, request: Optional[Request] = None) -> str:
        return stored.url or self.delivery_url(stored.locator)

    def locator_from_url(self, url: Optional[str]) -> Optional[str]:
        return public_id_from_url(url)


def build_storage(settings: Settings) -> StorageBackend:
    if settings.storage_backend == "cloudinary":
        return CloudinaryStorage(
            cloud_name=settings.cloudinary_cloud_name or "",
            api_key=settings.cloudinary_api_key or "",
            api_secret=settings.cloudinary_api_secret or "",
            folder=settings.cloudinary_folder,
        )
    return LocalStorage(settings.upload_dir, UrlResolver(settings.base_url))


def discard_url(storage: StorageBackend, url: Optional[str]) -> bool:
    """Delete the object behind a stored URL, logging instead of raising."""

    if not url:
        return False
    locator = storage.locator_from_url(url)
    if not locator:
        logger.warning("No %s locator in %s; nothing deleted", storage.name, url)
        return False
    return storage.delete(locator)


def discard_urls(storage: StorageBackend, urls: Iterable[Optional[str]]) -> int:
    return sum(1 for url in urls if discard_url(storage, url))


async def release_urls(storage: StorageBackend, urls: Iterable[Optional[str]]) -> int:
    """``discard_urls`` on the threadpool; remote deletes block."""

    return await run_in_threadpool(discard_urls, storage, list(urls))
