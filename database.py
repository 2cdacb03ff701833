"""
MongoDB access helpers.

Each collection name is passed explicitly. Documents gain `createdAt` /
`updatedAt` on write, and `serialize` turns a stored document into the JSON
shape the API returns (`id` instead of `_id`, ObjectIds as strings).
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from errors import NotFound, ValidationFailed
from settings import Settings

logger = logging.getLogger(__name__)

Sort = Sequence[Tuple[str, int]]
NEWEST_FIRST: Sort = [("createdAt", DESCENDING)]

# fields that never leave the server
PRIVATE_FIELDS = {"passwordHash"}


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=5000)
    return client[settings.mongo_db_name]


def ensure_indexes(db: Database) -> None:
    db["admins"].create_index("email", unique=True)
    db["blogs"].create_index("slug", unique=True)
    db["blogs"].create_index([("postedAt", DESCENDING)])
    db["services"].create_index("slug", unique=True)
    db["subservices"].create_index("parentService")
    db["founders"].create_index("name", unique=True)
    db["gallery"].create_index("title", unique=True)
    db["contacts"].create_index("email")
    db["contacts"].create_index("status")
    db["contacts"].create_index([("createdAt", DESCENDING)])
    logger.info("MongoDB indexes ensured on %s", db.name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_seconds(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def object_id(value: str, field: str = "id") -> ObjectId:
    if not ObjectId.is_valid(value):
        raise ValidationFailed(f"Invalid {field}", errors={field: "Must be a valid identifier"})
    return ObjectId(value)


def contains(text: str) -> Dict[str, str]:
    """Case-insensitive substring match on user supplied text."""

    return {"$regex": re.escape(text), "$options": "i"}


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def create_document(db: Database, collection: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    doc = _as_dict(data)
    now = utcnow()
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    result = db[collection].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(
    db: Database,
    collection: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    *,
    sort: Optional[Sort] = NEWEST_FIRST,
    skip: int = 0,
    limit: int = 0,
) -> List[Dict[str, Any]]:
    cursor = db[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(db: Database, collection: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return db[collection].find_one(filter_dict)


def update_document(
    db: Database,
    collection: str,
    filter_dict: Dict[str, Any],
    changes: Dict[str, Any],
    *,
    upsert: bool = False,
) -> Optional[Dict[str, Any]]:
    now = utcnow()
    update: Dict[str, Any] = {"$set": {**changes, "updatedAt": now}}
    if upsert:
        update["$setOnInsert"] = {"createdAt": now}
    return db[collection].find_one_and_update(
        filter_dict,
        update,
        upsert=upsert,
        return_document=ReturnDocument.AFTER,
    )


def delete_document(db: Database, collection: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return db[collection].find_one_and_delete(filter_dict)


def get_by_id(db: Database, collection: str, doc_id: str, resource: str) -> Dict[str, Any]:
    doc = db[collection].find_one({"_id": object_id(doc_id)})
    if doc is None:
        raise NotFound.resource(resource)
    return doc


def count_documents(db: Database, collection: str, filter_dict: Optional[Dict[str, Any]] = None) -> int:
    return db[collection].count_documents(filter_dict or {})


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = {key: _plain(value) for key, value in doc.items() if key != "_id" and key not in PRIVATE_FIELDS}
    out = {"id": str(doc.get("_id", "")), **out}
    return out


def serialize_many(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize(doc) for doc in docs]
