"""
MongoDB access helpers.

Collections are named after the lowercase schema class (User -> "user",
Useractivity -> "useractivity", Content -> "content").
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

import config
from errors import ServerError, ValidationError

logger = logging.getLogger(__name__)

client = None
db = None

if config.DATABASE_URL:
    client = MongoClient(config.DATABASE_URL)
    db = client[config.DATABASE_NAME]

MAX_PAGE_SIZE = 1000


def now() -> datetime:
    # Naive UTC, which is what pymongo hands back on reads.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    if db is None:
        raise ServerError("Database not configured")
    return db


def object_id(value: Union[str, ObjectId]) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(str(value)):
        raise ValidationError("Invalid ID format")
    return ObjectId(str(value))


def create_document(database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with createdAt/updatedAt, return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    stamp = now()
    data_dict.setdefault("createdAt", stamp)
    data_dict["updatedAt"] = stamp
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(doc) for doc in cursor]


def serialize(value: Any) -> Any:
    """Recursively turn ObjectIds into strings so documents can be returned as JSON."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value


def clamp_page(page: Any, limit: Any, default_limit: int = 20, max_limit: int = MAX_PAGE_SIZE) -> Tuple[int, int]:
    try:
        page_num = int(page) if page not in (None, "") else 1
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        limit_num = default_limit
    return max(1, page_num), min(max_limit, max(1, limit_num))


def paginate(
    collection,
    filter_dict: dict,
    page: Any = 1,
    limit: Any = 20,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
    projection: Optional[dict] = None,
) -> Dict[str, Any]:
    page_num, limit_num = clamp_page(page, limit)
    total = collection.count_documents(filter_dict)
    cursor = collection.find(filter_dict, projection)
    if sort:
        cursor = cursor.sort(list(sort))
    docs = list(cursor.skip((page_num - 1) * limit_num).limit(limit_num))
    total_pages = math.ceil(total / limit_num) if total else 0
    has_next = page_num < total_pages
    has_prev = page_num > 1
    return {
        "docs": docs,
        "totalDocs": total,
        "limit": limit_num,
        "page": page_num,
        "totalPages": total_pages,
        "hasNextPage": has_next,
        "hasPrevPage": has_prev,
        "nextPage": page_num + 1 if has_next else None,
        "prevPage": page_num - 1 if has_prev else None,
    }


def sort_spec(sort_by: Optional[str], sort_order: Optional[str], default: str = "createdAt") -> List[Tuple[str, int]]:
    field = sort_by if isinstance(sort_by, str) and sort_by else default
    if not field.replace("_", "").replace(".", "").isalnum():
        field = default
    direction = ASCENDING if isinstance(sort_order, str) and sort_order.lower() == "asc" else DESCENDING
    return [(field, direction)]


def ensure_indexes(database) -> None:
    database["user"].create_index("username", unique=True)
    database["user"].create_index("email", unique=True)
    content = database["content"]
    content.create_index("platform")
    content.create_index([("year", DESCENDING)])
    content.create_index("assignedGenre")
    content.create_index("primaryLanguage")
    # Not unique: duplicate detection stays an advisory probe.
    content.create_index([("platform", ASCENDING), ("title", ASCENDING), ("year", ASCENDING)])
    activity = database["useractivity"]
    activity.create_index("user")
    activity.create_index("action")
    activity.create_index([("createdAt", DESCENDING)])
    logger.info("Indexes ensured on %s", database.name)
