# Storage backends: local disk naming and deletion, Cloudinary public-id
# recovery, and the Cloudinary SDK calls with the uploader replaced.

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError

from errors import StorageFailure, UnsupportedMedia
from storage import (
    CloudinaryStorage,
    LocalStorage,
    StoredObject,
    build_storage,
    check_media_type,
    discard_url,
    discard_urls,
    public_id_from_url,
)
from tests.support import PNG_BYTES, build_test_settings
from urls import UrlResolver

SECURE_URL = "https://res.cloudinary.com/demo/image/upload/v1700000000/victoria/image/abc123.png"


def local_storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "uploads"), UrlResolver("https://api.example.com"))


# ---------------------- Media types ----------------------
@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/gif", "image/webp", "IMAGE/PNG; q=1"])
def test_allowed_image_types(content_type: str) -> None:
    assert check_media_type(content_type).startswith("image/")


@pytest.mark.parametrize("content_type", ["image/svg+xml", "text/plain", "application/pdf", "", None])
def test_rejected_media_types(content_type) -> None:
    with pytest.raises(UnsupportedMedia) as excinfo:
        check_media_type(content_type)

    assert excinfo.value.status_code == 415


# ---------------------- Local disk ----------------------
def test_local_save_writes_named_file(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)

    stored = storage.save(PNG_BYTES, field_name="imageUrl", original_name="Team Photo.PNG", content_type="image/png")

    assert stored.locator.startswith("imageUrl-")
    assert stored.locator.endswith(".png")
    assert (tmp_path / "uploads" / stored.locator).read_bytes() == PNG_BYTES
    assert storage.public_url(stored) == f"https://api.example.com/uploads/{stored.locator}"


def test_local_generate_name_is_unique_and_keeps_extension() -> None:
    names = {LocalStorage.generate_name("image", "a.jpeg") for _ in range(50)}

    assert len(names) == 50
    assert all(name.startswith("image-") and name.endswith(".jpeg") for name in names)
    assert LocalStorage.generate_name("image", "noextension").count(".") == 0


def test_local_delete_is_idempotent(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)
    stored = storage.save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png")

    assert storage.delete(stored.locator) is True
    assert storage.delete(stored.locator) is False
    assert not (tmp_path / "uploads" / stored.locator).exists()


def test_local_delete_refuses_paths(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)
    outside = tmp_path / "keep.txt"
    outside.write_text("keep")

    assert storage.delete("../keep.txt") is False
    assert storage.delete("..") is False
    assert outside.exists()


def test_local_save_rejects_non_images(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)

    with pytest.raises(UnsupportedMedia):
        storage.save(b"hello", field_name="image", original_name="a.txt", content_type="text/plain")

    assert not (tmp_path / "uploads").exists() or not any((tmp_path / "uploads").iterdir())


def test_local_save_io_error_is_storage_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    storage = LocalStorage(str(blocker / "uploads"), UrlResolver("https://api.example.com"))

    with pytest.raises(StorageFailure):
        storage.save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png")


def test_discard_url_round_trips_through_resolver(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)
    stored = storage.save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png")
    url = storage.public_url(stored)

    assert discard_url(storage, url) is True
    assert discard_url(storage, url) is False
    assert discard_url(storage, None) is False
    assert discard_url(storage, "https://elsewhere.example.com/a.png") is False


def test_discard_urls_counts_deleted(tmp_path: Path) -> None:
    storage = local_storage(tmp_path)
    urls = [
        storage.public_url(storage.save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png"))
        for _ in range(2)
    ]

    assert discard_urls(storage, urls + [None, "https://api.example.com/uploads/missing.png"]) == 2


# ---------------------- Cloudinary public ids ----------------------
@pytest.mark.parametrize(
    "url, expected",
    [
        (SECURE_URL, "victoria/image/abc123"),
        ("https://res.cloudinary.com/demo/image/upload/c_fill,w_300,h_200/v123/folder/x.jpg", "folder/x"),
        ("https://res.cloudinary.com/demo/image/upload/c_scale,w_100/folder/x.webp", "folder/x"),
        ("https://res.cloudinary.com/demo/image/upload/folder/x.jpg", "folder/x"),
        ("https://res.cloudinary.com/demo/image/upload/v1/my%20folder/a%20b.png", "my folder/a b"),
        ("https://res.cloudinary.com/demo/image/upload/v1/docs/file.v2", "docs/file.v2"),
        ("http://res.cloudinary.com/demo/image/upload/v99/sample", "sample"),
    ],
)
def test_public_id_from_url(url: str, expected: str) -> None:
    assert public_id_from_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [None, "", "https://example.com/uploads/x.png", "https://res.cloudinary.com/demo/image/upload/v123"],
)
def test_public_id_from_foreign_urls(url) -> None:
    assert public_id_from_url(url) is None


# ---------------------- Cloudinary SDK calls ----------------------
class FakeUploader:
    def __init__(self, destroy_result: str = "ok", error: Optional[Exception] = None) -> None:
        self.calls: List[Tuple[str, Any, Dict[str, Any]]] = []
        self.destroy_result = destroy_result
        self.error = error

    def upload(self, file, **options):
        self.calls.append(("upload", file, options))
        if self.error is not None:
            raise self.error
        return {"public_id": "victoria/image/abc123", "secure_url": SECURE_URL}

    def destroy(self, public_id, **options):
        self.calls.append(("destroy", public_id, options))
        if self.error is not None:
            raise self.error
        return {"result": self.destroy_result}


@pytest.fixture
def uploader(monkeypatch: pytest.MonkeyPatch) -> FakeUploader:
    fake = FakeUploader()
    monkeypatch.setattr(cloudinary.uploader, "upload", fake.upload)
    monkeypatch.setattr(cloudinary.uploader, "destroy", fake.destroy)
    return fake


def cloudinary_storage() -> CloudinaryStorage:
    return CloudinaryStorage(cloud_name="demo", api_key="key-1", api_secret="shh", folder="victoria")


def test_cloudinary_save_uploads_into_field_folder(uploader: FakeUploader) -> None:
    storage = cloudinary_storage()

    stored = storage.save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png")

    assert stored == StoredObject(locator="victoria/image/abc123", url=SECURE_URL)
    assert storage.public_url(stored) == SECURE_URL
    action, file, options = uploader.calls[0]
    assert action == "upload"
    assert file == PNG_BYTES
    assert options["folder"] == "victoria/image"
    assert options["resource_type"] == "image"
    assert options["api_key"] == "key-1"
    assert options["cloud_name"] == "demo"


def test_cloudinary_save_rejects_non_images(uploader: FakeUploader) -> None:
    with pytest.raises(UnsupportedMedia):
        cloudinary_storage().save(b"hello", field_name="image", original_name="a.txt", content_type="text/plain")

    assert uploader.calls == []


def test_cloudinary_destroy_invalidates(uploader: FakeUploader) -> None:
    assert cloudinary_storage().delete("victoria/image/abc123") is True

    action, public_id, options = uploader.calls[0]
    assert (action, public_id) == ("destroy", "victoria/image/abc123")
    assert options["invalidate"] is True
    assert options["api_secret"] == "shh"


def test_cloudinary_delete_not_found_is_false(uploader: FakeUploader) -> None:
    uploader.destroy_result = "not found"

    assert cloudinary_storage().delete("victoria/image/missing") is False


def test_cloudinary_delete_error_is_false(uploader: FakeUploader) -> None:
    uploader.error = CloudinaryError("Server returned unexpected status code - 500")

    assert cloudinary_storage().delete("victoria/image/abc123") is False


def test_cloudinary_upload_error_is_storage_failure(uploader: FakeUploader) -> None:
    uploader.error = CloudinaryError("Invalid Signature")

    with pytest.raises(StorageFailure) as excinfo:
        cloudinary_storage().save(PNG_BYTES, field_name="image", original_name="a.png", content_type="image/png")

    assert "Invalid Signature" in str(excinfo.value.detail)


def test_cloudinary_public_url_without_secure_url() -> None:
    url = cloudinary_storage().public_url(StoredObject(locator="folder/x"))

    assert url.startswith("https://res.cloudinary.com/demo/image/upload/v1/folder/x")


@pytest.mark.parametrize(
    "locator",
    [
        "abc123",
        "victoria/image/abc123",
        "victoria/v2/abc",
        "v2/abc",
        "w_300/x",
        "c_fill,w_300/x",
        "folder/x.png",
        "folder/x.v2",
        "my folder/a b",
    ],
)
def test_cloudinary_locator_round_trip(locator: str) -> None:
    storage = cloudinary_storage()

    url = storage.public_url(StoredObject(locator=locator))

    assert storage.locator_from_url(url) == locator


def test_build_storage_selects_backend(tmp_path: Path) -> None:
    local = build_storage(build_test_settings(tmp_path))
    remote = build_storage(
        build_test_settings(
            tmp_path,
            storage_backend="cloudinary",
            cloudinary_cloud_name="demo",
            cloudinary_api_key="key",
            cloudinary_api_secret="secret",
        )
    )

    assert isinstance(local, LocalStorage)
    assert isinstance(remote, CloudinaryStorage)
    assert remote.folder == "victoria"
