import logging

from fastapi import APIRouter, Depends

from auth import require_editor
from database import delete_document, get_document, serialize, update_document
from dependencies import DbDep
from errors import NotFound
from responses import success
from schemas import ContactInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact-info", tags=["contact-info"])

COLLECTION = "contact_info"
SINGLETON_ID = "contact_info"


@router.get("")
async def get_contact_info(db: DbDep):
    info = get_document(db, COLLECTION, {"_id": SINGLETON_ID})
    if info is None:
        raise NotFound("Contact info not found")
    return success(serialize(info))


@router.post("", dependencies=[Depends(require_editor)])
async def save_contact_info(payload: ContactInfo, db: DbDep):
    # upsert on the fixed key; concurrent saves leave one document, last write wins
    info = update_document(
        db,
        COLLECTION,
        {"_id": SINGLETON_ID},
        payload.model_dump(by_alias=True),
        upsert=True,
    )
    logger.info("Contact info saved")
    return success(serialize(info), "Contact info saved successfully")


@router.delete("", dependencies=[Depends(require_editor)])
async def delete_contact_info(db: DbDep):
    if delete_document(db, COLLECTION, {"_id": SINGLETON_ID}) is None:
        raise NotFound("Contact info not found")
    return success(message="Contact info deleted successfully")
