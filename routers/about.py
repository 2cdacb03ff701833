"""
About page: one document holding the page title and an ordered list of
categories, each with its own sections. Categories and sections get string ids
on first save; category slugs are unique within the page.
"""
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends

from auth import require_editor
from database import get_document, serialize, update_document
from dependencies import DbDep
from errors import Conflict, NotFound, ValidationFailed
from responses import success
from schemas import AboutCategory, AboutCategoryUpdate, AboutPage, AboutSection
from slugs import make_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/about", tags=["about"])

COLLECTION = "about"
SINGLETON_ID = "about"
DEFAULT_TITLE = "About Us"


def _new_id() -> str:
    return str(ObjectId())


def _section_doc(section: AboutSection) -> Dict[str, Any]:
    doc = section.model_dump(by_alias=True)
    doc["id"] = doc.get("id") or _new_id()
    return doc


def _category_slug(name: str, slug: Optional[str]) -> str:
    value = make_slug(slug or name)
    if not value:
        raise ValidationFailed(
            "Category slug is required",
            errors={"slug": "Category name or slug must contain letters or digits"},
        )
    return value


def _category_doc(category: AboutCategory) -> Dict[str, Any]:
    doc = category.model_dump(by_alias=True)
    doc["id"] = doc.get("id") or _new_id()
    doc["slug"] = _category_slug(category.name, category.slug)
    doc["sections"] = [_section_doc(section) for section in category.sections]
    return doc


def _check_unique_slugs(categories: List[Dict[str, Any]]) -> None:
    seen = set()
    for category in categories:
        if category["slug"] in seen:
            raise Conflict(f"Category slug '{category['slug']}' already exists")
        seen.add(category["slug"])


def _load_page(db) -> Dict[str, Any]:
    page = get_document(db, COLLECTION, {"_id": SINGLETON_ID})
    if page is None:
        raise NotFound("About page not found")
    return page


def _category_index(page: Dict[str, Any], category_id: str) -> int:
    for index, category in enumerate(page.get("categories", [])):
        if category.get("id") == category_id:
            return index
    raise NotFound("Category not found")


def _save_categories(db, categories: List[Dict[str, Any]]) -> Dict[str, Any]:
    page = update_document(db, COLLECTION, {"_id": SINGLETON_ID}, {"categories": categories})
    if page is None:
        raise NotFound("About page not found")
    return page


@router.get("")
async def get_about_page(db: DbDep):
    return success(serialize(_load_page(db)))


@router.get("/category/{slug}")
async def get_category(slug: str, db: DbDep):
    page = _load_page(db)
    for category in page.get("categories", []):
        if category.get("slug") == slug:
            return success(category)
    raise NotFound("Category not found")


@router.post("", dependencies=[Depends(require_editor)])
async def save_about_page(payload: AboutPage, db: DbDep):
    """Create the page or overwrite the parts present in the body."""

    existing = get_document(db, COLLECTION, {"_id": SINGLETON_ID}) or {}
    changes: Dict[str, Any] = {
        "pageTitle": payload.page_title or existing.get("pageTitle") or DEFAULT_TITLE,
    }
    if payload.categories is not None:
        categories = [_category_doc(category) for category in payload.categories]
        _check_unique_slugs(categories)
        changes["categories"] = categories
    elif "categories" not in existing:
        changes["categories"] = []

    page = update_document(db, COLLECTION, {"_id": SINGLETON_ID}, changes, upsert=True)
    logger.info("About page saved with %d categories", len(page.get("categories", [])))
    return success(serialize(page), "About page saved successfully")


@router.put("/category/{category_id}", dependencies=[Depends(require_editor)])
async def update_category(category_id: str, payload: AboutCategoryUpdate, db: DbDep):
    page = _load_page(db)
    categories = list(page.get("categories", []))
    index = _category_index(page, category_id)
    category = dict(categories[index])

    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if not changes:
        raise ValidationFailed(
            "At least one field must be provided",
            errors={"update": "Provide name, slug, description, image or sections"},
        )
    if "slug" in changes or "name" in changes:
        changes["slug"] = _category_slug(changes.get("name", category["name"]), changes.get("slug"))
    if payload.sections is not None:
        changes["sections"] = [_section_doc(section) for section in payload.sections]

    category.update(changes)
    categories[index] = category
    _check_unique_slugs(categories)

    _save_categories(db, categories)
    return success(category, "Category updated successfully")


@router.delete("/category/{category_id}", dependencies=[Depends(require_editor)])
async def delete_category(category_id: str, db: DbDep):
    page = _load_page(db)
    categories = list(page.get("categories", []))
    removed = categories.pop(_category_index(page, category_id))
    _save_categories(db, categories)
    logger.info("Deleted about category %s (%s)", category_id, removed.get("slug"))
    return success({"id": category_id}, "Category deleted successfully")


@router.delete("/category/{category_id}/section/{section_id}", dependencies=[Depends(require_editor)])
async def delete_section(category_id: str, section_id: str, db: DbDep):
    page = _load_page(db)
    categories = list(page.get("categories", []))
    index = _category_index(page, category_id)
    category = dict(categories[index])

    sections = [section for section in category.get("sections", []) if section.get("id") != section_id]
    if len(sections) == len(category.get("sections", [])):
        raise NotFound("Section not found")
    category["sections"] = sections
    categories[index] = category

    _save_categories(db, categories)
    return success(category, "Section deleted successfully")
