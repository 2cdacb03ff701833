import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

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
from errors import NotFound
from responses import success, success_list
from schemas import Service, ServiceCategory, ServiceFields, ServiceUpdate
from slugs import timestamped_slug
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])

COLLECTION = "services"

service_uploads = upload_fields(FileField("image"))


@router.get("")
async def list_services(
    db: DbDep,
    featured: Optional[bool] = Query(None),
    category: Optional[ServiceCategory] = Query(None),
):
    filter_dict: Dict[str, Any] = {}
    if featured is not None:
        filter_dict["isFeatured"] = featured
    if category is not None:
        filter_dict["category"] = category
    return success_list(serialize_many(get_documents(db, COLLECTION, filter_dict)))


@router.get("/id/{service_id}")
async def get_service_by_id(service_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, service_id, "Service")))


@router.get("/{slug}")
async def get_service_by_slug(slug: str, db: DbDep):
    service = get_document(db, COLLECTION, {"slug": slug})
    if not service:
        raise NotFound.resource("Service")
    return success(serialize(service))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_service(db: DbDep, uploads: StagedUploads = Depends(service_uploads)):
    async with uploads:
        fields = uploads.parse(ServiceFields)
        image = uploads.require("image", "Service image is required")
        service = Service(
            **fields.model_dump(),
            slug=timestamped_slug(fields.title),
            image_url=uploads.url(image),
        )
        doc = create_document(db, COLLECTION, service)
        uploads.commit()

    logger.info("Created service %s (%s)", doc["_id"], doc["slug"])
    return success(serialize(doc), "Service created successfully")


@router.put("/{service_id}", dependencies=[Depends(require_editor)])
async def update_service(
    service_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(service_uploads),
):
    async with uploads:
        service = get_by_id(db, COLLECTION, service_id, "Service")
        changes = uploads.parse_changes(ServiceUpdate)
        if "title" in changes and changes["title"] != service.get("title"):
            changes["slug"] = timestamped_slug(changes["title"])

        replaced = uploads.assign(changes, service, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": service["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Service")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Service updated successfully")


@router.patch("/{service_id}/featured", dependencies=[Depends(require_editor)])
async def toggle_featured(service_id: str, db: DbDep):
    service = get_by_id(db, COLLECTION, service_id, "Service")
    featured = not service.get("isFeatured", False)
    updated = update_document(db, COLLECTION, {"_id": service["_id"]}, {"isFeatured": featured})
    if updated is None:
        raise NotFound.resource("Service")
    state = "featured" if featured else "unfeatured"
    return success(serialize(updated), f"Service {state} successfully")


@router.delete("/{service_id}", dependencies=[Depends(require_editor)])
async def delete_service(service_id: str, db: DbDep, storage: StorageDep):
    service = delete_document(db, COLLECTION, {"_id": object_id(service_id)})
    if service is None:
        raise NotFound.resource("Service")
    await release_urls(storage, [service.get("imageUrl")])

    # sub-services cannot outlive their parent
    children = get_documents(db, "subservices", {"parentService": str(service["_id"])}, sort=None)
    if children:
        db["subservices"].delete_many({"_id": {"$in": [child["_id"] for child in children]}})
        await release_urls(storage, [child.get("imageUrl") for child in children])
        logger.info("Deleted %d sub-service(s) of service %s", len(children), service_id)

    return success({"id": service_id}, "Service deleted successfully")
