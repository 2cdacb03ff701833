import logging
import math

from fastapi import APIRouter, Depends, Query

from auth import require_editor
from database import (
    count_documents,
    create_document,
    delete_document,
    get_by_id,
    get_documents,
    object_id,
    serialize,
    serialize_many,
    update_document,
)
from dependencies import DbDep, StorageDep
from errors import NotFound
from responses import success, success_list
from schemas import Feature, FeatureFields, FeatureUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/features", tags=["features"])

COLLECTION = "features"

feature_uploads = upload_fields(FileField("image"))


@router.get("")
async def list_features(db: DbDep):
    return success_list(serialize_many(get_documents(db, COLLECTION)))


@router.get("/paginated")
async def list_features_paginated(
    db: DbDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    total = count_documents(db, COLLECTION)
    docs = get_documents(db, COLLECTION, skip=(page - 1) * limit, limit=limit)
    total_pages = math.ceil(total / limit)
    pagination = {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
    return success_list(serialize_many(docs), pagination=pagination)


@router.get("/{feature_id}")
async def get_feature(feature_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, feature_id, "Feature")))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_feature(db: DbDep, uploads: StagedUploads = Depends(feature_uploads)):
    async with uploads:
        fields = uploads.parse(FeatureFields)
        image = uploads.require("image", "Feature image is required")
        doc = create_document(
            db,
            COLLECTION,
            Feature(title=fields.title, subtitle=fields.subtitle, image=uploads.url(image)),
        )
        uploads.commit()

    logger.info("Created feature %s", doc["_id"])
    return success(serialize(doc), "Feature created successfully")


@router.put("/{feature_id}", dependencies=[Depends(require_editor)])
async def update_feature(
    feature_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(feature_uploads),
):
    async with uploads:
        feature = get_by_id(db, COLLECTION, feature_id, "Feature")
        changes = uploads.parse_changes(FeatureUpdate)
        replaced = uploads.assign(changes, feature, {"image": "image"})
        updated = update_document(db, COLLECTION, {"_id": feature["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Feature")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Feature updated successfully")


@router.delete("/{feature_id}", dependencies=[Depends(require_editor)])
async def delete_feature(feature_id: str, db: DbDep, storage: StorageDep):
    feature = delete_document(db, COLLECTION, {"_id": object_id(feature_id)})
    if feature is None:
        raise NotFound.resource("Feature")
    await release_urls(storage, [feature.get("image")])
    return success({"id": feature_id}, "Feature deleted successfully")
