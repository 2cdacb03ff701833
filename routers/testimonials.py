import logging

from fastapi import APIRouter, Depends

from auth import require_editor
from database import (
    contains,
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
from errors import NotFound, ValidationFailed
from responses import success, success_list
from schemas import Testimonial, TestimonialFields, TestimonialUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testimonials", tags=["testimonials"])

COLLECTION = "testimonials"

testimonial_uploads = upload_fields(FileField("image"))


@router.get("")
async def list_testimonials(db: DbDep):
    return success_list(serialize_many(get_documents(db, COLLECTION)))


@router.get("/count")
async def count_testimonials(db: DbDep):
    return success({"count": count_documents(db, COLLECTION)})


@router.get("/stars/{rating}")
async def testimonials_by_stars(rating: str, db: DbDep):
    if not rating.isdigit() or not 1 <= int(rating) <= 5:
        raise ValidationFailed("Rating must be between 1 and 5", errors={"rating": "Must be an integer from 1 to 5"})
    docs = get_documents(db, COLLECTION, {"stars": int(rating)})
    return success_list(serialize_many(docs))


@router.get("/search/{query}")
async def search_testimonials(query: str, db: DbDep):
    pattern = contains(query)
    docs = get_documents(db, COLLECTION, {"$or": [{"name": pattern}, {"description": pattern}]})
    return success_list(serialize_many(docs))


@router.get("/{testimonial_id}")
async def get_testimonial(testimonial_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, testimonial_id, "Testimonial")))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_testimonial(db: DbDep, uploads: StagedUploads = Depends(testimonial_uploads)):
    async with uploads:
        fields = uploads.parse(TestimonialFields)
        image = uploads.require("image", "Testimonial image is required")
        doc = create_document(db, COLLECTION, Testimonial(**fields.model_dump(), image_url=uploads.url(image)))
        uploads.commit()

    logger.info("Created testimonial %s (%d stars)", doc["_id"], doc["stars"])
    return success(serialize(doc), "Testimonial created successfully")


@router.put("/{testimonial_id}", dependencies=[Depends(require_editor)])
async def update_testimonial(
    testimonial_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(testimonial_uploads),
):
    async with uploads:
        testimonial = get_by_id(db, COLLECTION, testimonial_id, "Testimonial")
        changes = uploads.parse_changes(TestimonialUpdate)
        replaced = uploads.assign(changes, testimonial, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": testimonial["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Testimonial")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Testimonial updated successfully")


@router.delete("/{testimonial_id}", dependencies=[Depends(require_editor)])
async def delete_testimonial(testimonial_id: str, db: DbDep, storage: StorageDep):
    testimonial = delete_document(db, COLLECTION, {"_id": object_id(testimonial_id)})
    if testimonial is None:
        raise NotFound.resource("Testimonial")
    await release_urls(storage, [testimonial.get("imageUrl")])
    return success({"id": testimonial_id}, "Testimonial and associated files deleted successfully")
