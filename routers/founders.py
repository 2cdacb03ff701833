import logging

from fastapi import APIRouter, Depends

from auth import require_editor
from database import (
    contains,
    count_documents,
    create_document,
    delete_document,
    get_by_id,
    get_document,
    get_documents,
    object_id,
    serialize,
    serialize_many,
    update_document,
)
from dependencies import DbDep, StorageDep
from errors import Conflict, NotFound
from responses import success, success_list
from schemas import Founder, FounderFields, FounderUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/founders", tags=["founders"])

COLLECTION = "founders"

founder_uploads = upload_fields(FileField("image"))


@router.get("")
async def list_founders(db: DbDep):
    return success_list(serialize_many(get_documents(db, COLLECTION)))


@router.get("/count")
async def count_founders(db: DbDep):
    return success({"count": count_documents(db, COLLECTION)})


@router.get("/position/{position}")
async def founders_by_position(position: str, db: DbDep):
    docs = get_documents(db, COLLECTION, {"position": contains(position)})
    return success_list(serialize_many(docs))


@router.get("/search/{query}")
async def search_founders(query: str, db: DbDep):
    pattern = contains(query)
    filter_dict = {"$or": [{"name": pattern}, {"position": pattern}, {"title": pattern}, {"description": pattern}]}
    return success_list(serialize_many(get_documents(db, COLLECTION, filter_dict)))


@router.get("/{founder_id}")
async def get_founder(founder_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, founder_id, "Founder")))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_founder(db: DbDep, uploads: StagedUploads = Depends(founder_uploads)):
    async with uploads:
        fields = uploads.parse(FounderFields)
        image = uploads.require("image", "Founder image is required")
        if get_document(db, COLLECTION, {"name": fields.name}):
            raise Conflict("Founder with this name already exists")

        doc = create_document(db, COLLECTION, Founder(**fields.model_dump(), image_url=uploads.url(image)))
        uploads.commit()

    logger.info("Created founder %s", doc["_id"])
    return success(serialize(doc), "Founder created successfully")


@router.put("/{founder_id}", dependencies=[Depends(require_editor)])
async def update_founder(
    founder_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(founder_uploads),
):
    async with uploads:
        founder = get_by_id(db, COLLECTION, founder_id, "Founder")
        changes = uploads.parse_changes(FounderUpdate)
        if "name" in changes and get_document(db, COLLECTION, {"name": changes["name"], "_id": {"$ne": founder["_id"]}}):
            raise Conflict("Founder with this name already exists")

        replaced = uploads.assign(changes, founder, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": founder["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Founder")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Founder updated successfully")


@router.delete("/{founder_id}", dependencies=[Depends(require_editor)])
async def delete_founder(founder_id: str, db: DbDep, storage: StorageDep):
    founder = delete_document(db, COLLECTION, {"_id": object_id(founder_id)})
    if founder is None:
        raise NotFound.resource("Founder")
    await release_urls(storage, [founder.get("imageUrl")])
    return success({"id": founder_id}, "Founder and associated files deleted successfully")
