import logging

from fastapi import APIRouter, Depends

from auth import require_editor
from database import create_document, delete_document, get_document, serialize, update_document
from dependencies import DbDep, StorageDep
from errors import Conflict, NotFound
from responses import success
from schemas import Company, CompanyFields, CompanyUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/company", tags=["company"])

COLLECTION = "company"
SINGLETON_ID = "company"

company_uploads = upload_fields(FileField("image"))


@router.get("")
async def get_company(db: DbDep):
    company = get_document(db, COLLECTION, {"_id": SINGLETON_ID})
    if company is None:
        raise NotFound("Company not found")
    return success(serialize(company))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_company(db: DbDep, uploads: StagedUploads = Depends(company_uploads)):
    async with uploads:
        fields = uploads.parse(CompanyFields)
        image = uploads.require("image", "Image file is required")
        if get_document(db, COLLECTION, {"_id": SINGLETON_ID}):
            raise Conflict("Company already exists. Use update instead.")

        doc = Company(title=fields.title, image_url=uploads.url(image)).model_dump(by_alias=True)
        doc["_id"] = SINGLETON_ID
        company = create_document(db, COLLECTION, doc)
        uploads.commit()

    logger.info("Created company record")
    return success(serialize(company), "Company created successfully")


@router.put("", dependencies=[Depends(require_editor)])
async def update_company(db: DbDep, storage: StorageDep, uploads: StagedUploads = Depends(company_uploads)):
    async with uploads:
        company = get_document(db, COLLECTION, {"_id": SINGLETON_ID})
        if company is None:
            raise NotFound("Company not found. Create it first.")
        changes = uploads.parse_changes(CompanyUpdate)
        replaced = uploads.assign(changes, company, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": SINGLETON_ID}, changes)
        if updated is None:
            raise NotFound("Company not found. Create it first.")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Company updated successfully")


@router.delete("", dependencies=[Depends(require_editor)])
async def delete_company(db: DbDep, storage: StorageDep):
    company = delete_document(db, COLLECTION, {"_id": SINGLETON_ID})
    if company is None:
        raise NotFound("Company not found")
    await release_urls(storage, [company.get("imageUrl")])
    return success(message="Company deleted successfully")
