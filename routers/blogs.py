import logging

from fastapi import APIRouter, Depends
from pymongo import DESCENDING

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
    utcnow,
)
from dependencies import DbDep, StorageDep
from errors import Conflict, NotFound, ValidationFailed
from responses import success, success_list
from schemas import Blog, BlogFields, BlogUpdate
from slugs import make_slug
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["blogs"])

COLLECTION = "blogs"
ASSET_FIELDS = {"imageUrl": "imageUrl", "authorImageUrl": "authorImageUrl"}

blog_uploads = upload_fields(FileField("imageUrl"), FileField("authorImageUrl"))


def _slug_for(title: str) -> str:
    slug = make_slug(title)
    if not slug:
        raise ValidationFailed(errors={"title": "Title must contain letters or digits"})
    return slug


@router.get("")
async def list_blogs(db: DbDep):
    docs = get_documents(db, COLLECTION, sort=[("postedAt", DESCENDING)])
    return success_list(serialize_many(docs))


@router.get("/id/{blog_id}")
async def get_blog_by_id(blog_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, blog_id, "Blog post")))


@router.get("/{slug}")
async def get_blog_by_slug(slug: str, db: DbDep):
    blog = get_document(db, COLLECTION, {"slug": slug})
    if not blog:
        raise NotFound.resource("Blog post")
    return success(serialize(blog))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_blog(db: DbDep, uploads: StagedUploads = Depends(blog_uploads)):
    async with uploads:
        fields = uploads.parse(BlogFields)
        image = uploads.require("imageUrl", "Blog image is required")

        slug = _slug_for(fields.title)
        if get_document(db, COLLECTION, {"slug": slug}):
            logger.info("Blog slug %s already taken", slug)
            raise Conflict("Blog with this title already exists")

        blog = Blog(
            title=fields.title,
            description=fields.description,
            author=fields.author,
            slug=slug,
            image_url=uploads.url(image),
            author_image_url=uploads.url_for("authorImageUrl"),
            posted_at=utcnow(),
        )
        doc = create_document(db, COLLECTION, blog)
        uploads.commit()

    logger.info("Created blog %s (%s)", doc["_id"], slug)
    return success(serialize(doc), "Blog created successfully")


@router.put("/{blog_id}", dependencies=[Depends(require_editor)])
async def update_blog(
    blog_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(blog_uploads),
):
    async with uploads:
        blog = get_by_id(db, COLLECTION, blog_id, "Blog post")
        changes = uploads.parse_changes(BlogUpdate)

        if "title" in changes:
            slug = _slug_for(changes["title"])
            if get_document(db, COLLECTION, {"slug": slug, "_id": {"$ne": blog["_id"]}}):
                raise Conflict("Blog with this title already exists")
            changes["slug"] = slug

        replaced = uploads.assign(changes, blog, ASSET_FIELDS)
        updated = update_document(db, COLLECTION, {"_id": blog["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Blog post")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Blog updated successfully")


@router.delete("/{blog_id}", dependencies=[Depends(require_editor)])
async def delete_blog(blog_id: str, db: DbDep, storage: StorageDep):
    blog = delete_document(db, COLLECTION, {"_id": object_id(blog_id)})
    if blog is None:
        raise NotFound.resource("Blog post")

    await release_urls(storage, [blog.get(key) for key in ASSET_FIELDS.values()])
    logger.info("Deleted blog %s", blog_id)
    return success({"id": blog_id}, "Blog post and associated files deleted successfully")
