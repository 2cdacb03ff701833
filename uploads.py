"""
Multipart upload handling.

`upload_fields(...)` builds a dependency that reads the request form, checks
every file against the declared field manifest, the image MIME allowlist and
the size ceiling, and stages accepted files in the storage backend before the
route body runs. The route receives a `StagedUploads`:

    async with uploads:
        fields = uploads.parse(TeamMemberFields)
        ...persist the record...
        uploads.commit()

Leaving the `async with` block without `commit()` (validation error, conflict,
database failure) deletes every staged file.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from dependencies import get_config, get_storage
from errors import PayloadTooLarge, ValidationFailed, field_errors
from settings import Settings
from storage import StorageBackend, StoredObject, check_media_type

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class FileField:
    name: str
    max_count: int = 1


@dataclass(frozen=True)
class StagedFile:
    field_name: str
    original_name: str
    size: int
    content_type: str
    stored: StoredObject

    @property
    def locator(self) -> str:
        return self.stored.locator


def _human_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024 * 1024:
        return f"{num_bytes / (1024 * 1024 * 1024):g}GB"
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g}MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:g}KB"
    return f"{num_bytes} bytes"


class StagedUploads:
    def __init__(
        self,
        storage: StorageBackend,
        request: Optional[Request] = None,
        fields: Optional[Dict[str, str]] = None,
    ) -> None:
        self.storage = storage
        self.request = request
        self.fields: Dict[str, str] = dict(fields or {})
        self._files: Dict[str, List[StagedFile]] = {}
        self.committed = False

    def add(self, staged: StagedFile) -> None:
        self._files.setdefault(staged.field_name, []).append(staged)

    @property
    def has_files(self) -> bool:
        return any(self._files.values())

    def all_files(self) -> List[StagedFile]:
        return [staged for items in self._files.values() for staged in items]

    def files(self, name: str) -> List[StagedFile]:
        return list(self._files.get(name, []))

    def file(self, name: str) -> Optional[StagedFile]:
        items = self._files.get(name)
        return items[0] if items else None

    def url(self, staged: StagedFile) -> str:
        return self.storage.public_url(staged.stored, self.request)

    def url_for(self, name: str) -> Optional[str]:
        staged = self.file(name)
        return self.url(staged) if staged else None

    def present_fields(self) -> Dict[str, str]:
        return {key: value for key, value in self.fields.items() if value.strip() != ""}

    def parse(self, model: Type[ModelT]) -> ModelT:
        try:
            return model.model_validate(self.present_fields())
        except ValidationError as exc:
            raise ValidationFailed(errors=field_errors(exc)) from exc

    def require(self, name: str, message: str) -> StagedFile:
        staged = self.file(name)
        if staged is None:
            raise ValidationFailed(message, errors={name: message})
        return staged

    def assign(self, changes: Dict[str, Any], current: Dict[str, Any], mapping: Dict[str, str]) -> List[str]:
        """Point ``changes`` at newly staged files; return the URLs they replace.

        ``mapping`` is upload field name -> document key.
        """

        replaced = []
        for field_name, key in mapping.items():
            url = self.url_for(field_name)
            if url is None:
                continue
            changes[key] = url
            if current.get(key):
                replaced.append(current[key])
        return replaced

    def parse_changes(self, model: Type[BaseModel]) -> Dict[str, Any]:
        """Partial update: the provided fields as stored keys, at least one field or file required."""

        changes = self.parse(model).model_dump(by_alias=True, exclude_none=True)
        if not changes and not self.has_files:
            raise ValidationFailed(
                "At least one field must be provided",
                errors={"update": "At least one field or an image must be provided for update"},
            )
        return changes

    def commit(self) -> None:
        self.committed = True

    def release(self) -> int:
        released = 0
        for staged in self.all_files():
            if self.storage.delete(staged.locator):
                released += 1
        if self._files:
            logger.info("Released %d staged upload(s)", released)
        self._files = {}
        return released

    async def __aenter__(self) -> "StagedUploads":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if not self.committed:
            await run_in_threadpool(self.release)
        return False


def _is_empty_part(upload: UploadFile) -> bool:
    # browsers post an empty, nameless part for an untouched file input
    return not upload.filename and not upload.size


def upload_fields(*manifest: FileField):
    """Dependency factory staging the files named in ``manifest``."""

    expected = {field.name: field for field in manifest}
    expected_names = list(expected)

    async def stage_uploads(
        request: Request,
        storage: StorageBackend = Depends(get_storage),
        settings: Settings = Depends(get_config),
    ) -> StagedUploads:
        form = await request.form()
        fields: Dict[str, str] = {}
        incoming: Dict[str, List[UploadFile]] = {}

        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if _is_empty_part(value):
                    continue
                if key not in expected:
                    logger.warning("Unexpected upload field %r; expected %s", key, expected_names)
                    raise ValidationFailed(
                        f"Unexpected field '{key}'. Expected fields: {', '.join(expected_names)}",
                        extra={"expectedFields": expected_names, "receivedField": key},
                    )
                incoming.setdefault(key, []).append(value)
                if len(incoming[key]) > expected[key].max_count:
                    raise ValidationFailed(
                        f"Too many files for field '{key}'. Maximum {expected[key].max_count} allowed.",
                        extra={"expectedFields": expected_names, "receivedField": key},
                    )
            else:
                fields[key] = value

        staged = StagedUploads(storage, request, fields)
        limit = settings.max_upload_bytes
        try:
            for name, items in incoming.items():
                for upload in items:
                    content_type = check_media_type(upload.content_type)
                    if upload.size is not None and upload.size > limit:
                        raise PayloadTooLarge(f"File size too large. Maximum {_human_size(limit)} allowed.")
                    data = await upload.read()
                    if len(data) > limit:
                        raise PayloadTooLarge(f"File size too large. Maximum {_human_size(limit)} allowed.")
                    stored = await run_in_threadpool(
                        storage.save,
                        data,
                        field_name=name,
                        original_name=upload.filename or "",
                        content_type=content_type,
                    )
                    staged.add(
                        StagedFile(
                            field_name=name,
                            original_name=upload.filename or "",
                            size=len(data),
                            content_type=content_type,
                            stored=stored,
                        )
                    )
        except BaseException:
            await run_in_threadpool(staged.release)
            raise
        finally:
            await form.close()

        if staged.has_files:
            logger.info(
                "Staged uploads: %s",
                [(item.field_name, item.original_name, item.size, item.locator) for item in staged.all_files()],
            )
        return staged

    return stage_uploads
