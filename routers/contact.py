import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from auth import require_editor
from database import (
    create_document,
    delete_document,
    get_by_id,
    get_documents,
    object_id,
    serialize,
    serialize_many,
    update_document,
)
from dependencies import DbDep
from errors import NotFound
from responses import success, success_list
from schemas import ContactStatus, ContactStatusUpdate, ContactSubmission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])

COLLECTION = "contacts"


@router.post("", status_code=201)
async def submit_contact(payload: ContactSubmission, db: DbDep):
    doc = payload.model_dump(by_alias=True)
    doc["email"] = doc["email"].lower()
    doc["status"] = "new"
    contact = create_document(db, COLLECTION, doc)
    logger.info("Contact submission %s from %s", contact["_id"], contact["email"])
    return success(
        {"id": str(contact["_id"]), "name": contact["name"], "email": contact["email"]},
        "Thank you for your message! We'll get back to you soon.",
    )


@router.get("", dependencies=[Depends(require_editor)])
async def list_contacts(db: DbDep, status: Optional[ContactStatus] = Query(None)):
    filter_dict: Dict[str, Any] = {}
    if status is not None:
        filter_dict["status"] = status
    return success_list(serialize_many(get_documents(db, COLLECTION, filter_dict)))


@router.get("/{contact_id}", dependencies=[Depends(require_editor)])
async def get_contact(contact_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, contact_id, "Contact")))


@router.patch("/{contact_id}/status", dependencies=[Depends(require_editor)])
async def update_contact_status(contact_id: str, payload: ContactStatusUpdate, db: DbDep):
    updated = update_document(db, COLLECTION, {"_id": object_id(contact_id)}, {"status": payload.status})
    if updated is None:
        raise NotFound.resource("Contact")
    return success(serialize(updated), "Contact status updated")


@router.delete("/{contact_id}", dependencies=[Depends(require_editor)])
async def delete_contact(contact_id: str, db: DbDep):
    if delete_document(db, COLLECTION, {"_id": object_id(contact_id)}) is None:
        raise NotFound.resource("Contact")
    return success({"id": contact_id}, "Contact deleted successfully")
