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
from errors import NotFound
from responses import success, success_list
from schemas import TeamMember, TeamMemberFields, TeamMemberUpdate
from storage import release_urls
from uploads import FileField, StagedUploads, upload_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team-members", tags=["team-members"])

COLLECTION = "team_members"

member_uploads = upload_fields(FileField("image"))


@router.get("")
async def list_team_members(db: DbDep):
    return success_list(serialize_many(get_documents(db, COLLECTION)))


@router.get("/count")
async def count_team_members(db: DbDep):
    return success({"count": count_documents(db, COLLECTION)})


@router.get("/role/{role}")
async def team_members_by_role(role: str, db: DbDep):
    docs = get_documents(db, COLLECTION, {"role": contains(role)})
    return success_list(serialize_many(docs))


@router.get("/search/{query}")
async def search_team_members(query: str, db: DbDep):
    pattern = contains(query)
    docs = get_documents(db, COLLECTION, {"$or": [{"name": pattern}, {"role": pattern}]})
    return success_list(serialize_many(docs))


@router.get("/{member_id}")
async def get_team_member(member_id: str, db: DbDep):
    return success(serialize(get_by_id(db, COLLECTION, member_id, "Team member")))


@router.post("", status_code=201, dependencies=[Depends(require_editor)])
async def create_team_member(db: DbDep, uploads: StagedUploads = Depends(member_uploads)):
    async with uploads:
        fields = uploads.parse(TeamMemberFields)
        image = uploads.require("image", "Team member image is required")
        doc = create_document(
            db,
            COLLECTION,
            TeamMember(name=fields.name, role=fields.role, image_url=uploads.url(image)),
        )
        uploads.commit()

    logger.info("Created team member %s", doc["_id"])
    return success(serialize(doc), "Team member created successfully")


@router.put("/{member_id}", dependencies=[Depends(require_editor)])
async def update_team_member(
    member_id: str,
    db: DbDep,
    storage: StorageDep,
    uploads: StagedUploads = Depends(member_uploads),
):
    async with uploads:
        member = get_by_id(db, COLLECTION, member_id, "Team member")
        changes = uploads.parse_changes(TeamMemberUpdate)
        replaced = uploads.assign(changes, member, {"image": "imageUrl"})
        updated = update_document(db, COLLECTION, {"_id": member["_id"]}, changes)
        if updated is None:
            raise NotFound.resource("Team member")
        uploads.commit()

    await release_urls(storage, replaced)
    return success(serialize(updated), "Team member updated successfully")


@router.delete("/{member_id}", dependencies=[Depends(require_editor)])
async def delete_team_member(member_id: str, db: DbDep, storage: StorageDep):
    member = delete_document(db, COLLECTION, {"_id": object_id(member_id)})
    if member is None:
        raise NotFound.resource("Team member")
    await release_urls(storage, [member.get("imageUrl")])
    return success({"id": member_id}, "Team member and associated files deleted successfully")
