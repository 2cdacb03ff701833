import logging
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.database import Database

from auth import require_editor
from database import (
    create_document,
    delete_document,
    get_by_id,
    get_document,
    get_documents,
    object_id,
    serialize,
    update_document,
)
from dependencies import DbDep, StorageDep
from errors import NotFound
from responses import success, success_list
from schemas import SubService, SubServiceFields, SubServiceUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subservices", tags=["subservices"])

COLLECTION = "subservices"

subservice_uploads = upload_fields(FileField("image"))


def _with_parents(db: Database, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Serialize sub-services with ``parentService`` expanded to ``{id, title, slug}``."""

    parent_ids = {doc.get("parentService") for doc in docs}
    ids = [ObjectId(pid) for pid in parent_ids if pid and ObjectId.is_valid(pid)]
    parents = {
        str(parent["_id"]): {"id": str(parent["_id"]), "title": parent.get("title"), "slug": parent.get("slug")}
        for parent in get_documents(db, "services", {"_id": {"$in": ids}}, sort=None)
    }

    out = []
    for doc in docs:
        data = serialize(doc)
        data["parentService"] = parents.get(doc.get("parentService"))
        out.append(data)
    return out


def _parent_id(db: Database, value: str) -> str:
    parent = get_document(db, "services", {"_id": object_id(value, "parentService")})
    if parent is None:
        raise NotFound("Parent service not found")
    return str(parent["_id"])


@router.get("")
async def list_subservices(db: DbDep):
    return success_list(_with_parents(db, get_documents(db, COLLECTION)))


@router.get("/parent/{parent_id}")
async def list_by_parent(parent_id: str, db: DbDep):
    docs = get_documents(db, COLLECTION, {"parentService": str(object_id(parent_id, "parentId"))})
    return success_list(_with_parents(db, docs))


@router.get("/parent/slug/{slug}")
async def list_by_parent_slug(slug: str, db: DbDep):
    parent = get_document(db, "services", {"slug": slug})
    if parent is None:
        raise NotFound("Parent service not found")
    docs = get_documents(db, COLLECTION, {"parentService": str(parent["_id"])})
    return success_list(_with_parents(db, docs), parent=serialize(parent))


@router.get("/{subservice_id}")
async def get_subservice(subservice_id: str, db: DbDep):
    doc = get_by_id(db, COLLECTION, subservice_id, "Sub-service")
    return success(_with_parents(db, [doc])[0])


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_subservice(db: DbDep, uploads: StagedUploads = Depends(subservice_uploads)):
    async with uploads:
        fields = uploads.parse(SubServiceFields)
        image = uploads.require("image", "Sub-service image is required")
        parent_id = _parent_id(db, fields.parent_service)

        sub = SubService(
            title=fields.title,
            description=fields.description,
            parent_service=parent_id,
            image_url=uploads.url(image),
        )
        doc = create_document(db, COLLECTION, sub)
        uploads.commit()

    logger.info("Created sub-service %s under %s", doc["_id"], parent_id)
    return success(_with_parents(db, [doc])[0], "Sub-service created successfully")


@router.put("/{subservice_id}", dependencies=[Depends(require_editor)])
async def update_subservice(
    subservice_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(subservice_uploads),
):
    async with uploads:
        sub = get_by_id(db, COLLECTION, subservice_id, "Sub-service")
        changes = uploads.parse_changes(SubServiceUpdate)
        if "parentService" in changes:
            changes["parentService"] = _parent_id(db, changes["parentService"])

        replaced = uploads.assign(changes, sub, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": sub["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Sub-service")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(_with_parents(db, [updated])[0], "Sub-service updated successfully")


@router.delete("/{subservice_id}", dependencies=[Depends(require_editor)])
async def delete_subservice(subservice_id: str, db: DbDep, storage: StorageDep):
    sub = delete_document(db, COLLECTION, {"_id": object_id(subservice_id)})
    if sub is None:
        raise NotFound.resource("Sub-service")
    await release_urls(storage, [sub.get("imageUrl")])
    return success({"id": subservice_id}, "Sub-service and associated files deleted successfully")
