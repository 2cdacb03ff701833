import logging

from fastapi import APIRouter, Depends

from auth import require_editor
from database import (
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
from schemas import GalleryFields, GalleryItem, GalleryUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gallery", tags=["gallery"])

COLLECTION = "gallery"

gallery_uploads = upload_fields(FileField("imageUrl"))


@router.get("")
async def list_gallery(db: DbDep):
    return success_list(serialize_many(get_documents(db, COLLECTION)))


@router.get("/{item_id}")
async def get_gallery_item(item_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, item_id, "Gallery item")))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_gallery_item(db: DbDep, uploads: StagedUploads = Depends(gallery_uploads)):
    async with uploads:
        fields = uploads.parse(GalleryFields)
        image = uploads.require("imageUrl", "Gallery image is required")
        if get_document(db, COLLECTION, {"title": fields.title}):
            raise Conflict("Gallery item with this title already exists")

        doc = create_document(db, COLLECTION, GalleryItem(title=fields.title, image_url=uploads.url(image)))
        uploads.commit()

    logger.info("Created gallery item %s", doc["_id"])
    return success(serialize(doc), "Gallery item created successfully")


@router.put("/{item_id}", dependencies=[Depends(require_editor)])
async def update_gallery_item(
    item_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(gallery_uploads),
):
    async with uploads:
        item = get_by_id(db, COLLECTION, item_id, "Gallery item")
        changes = uploads.parse_changes(GalleryUpdate)
        if "title" in changes and get_document(db, COLLECTION, {"title": changes["title"], "_id": {"$ne": item["_id"]}}):
            raise Conflict("Gallery item with this title already exists")

        replaced = uploads.assign(changes, item, {"imageUrl": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": item["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Gallery item")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Gallery item updated successfully")


@router.delete("/{item_id}", dependencies=[Depends(require_editor)])
async def delete_gallery_item(item_id: str, db: DbDep, storage: StorageDep):
    item = delete_document(db, COLLECTION, {"_id": object_id(item_id)})
    if item is None:
        raise NotFound.resource("Gallery item")
    await release_urls(storage, [item.get("imageUrl")])
    return success({"id": item_id}, "Gallery item deleted successfully")
