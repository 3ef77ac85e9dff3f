"""
Catalog CRUD.

Content is soft-deleted (``isActive: false``) and every read is scoped to
active documents. The (platform, title, year) duplicate probe is advisory:
it runs before the write, not atomically with it.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from activity import track_activity
from analytics_filters import build_match_stage, first, flatten_query
from database import create_document, get_db, now, object_id, paginate, serialize, sort_spec
from errors import ConflictError, NotFoundError, ValidationError, success_response
from schemas import Content, ContentUpdate, DuplicateCheck
from security import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])

COLLECTION = "content"


# -------- Service --------

def validation_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]) or "body", "message": err["msg"]}
        for err in exc.errors()
    ]


def validate_content(data: Mapping[str, Any]) -> Content:
    try:
        return Content.model_validate(dict(data))
    except PydanticValidationError as exc:
        errors = validation_errors(exc)
        fields = ", ".join(e["field"] for e in errors)
        raise ValidationError(f"Validation failed: {fields}", errors)


def find_duplicate(db, platform: str, title: str, year: int, exclude_id=None) -> Optional[dict]:
    query: Dict[str, Any] = {"platform": platform, "title": title, "year": year, "isActive": True}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return db[COLLECTION].find_one(query)


def populate_creators(db, docs: List[dict]) -> List[dict]:
    """Swap each createdBy id (ObjectId or its string form) for {_id, username}."""
    ids = {ObjectId(str(d["createdBy"])) for d in docs if ObjectId.is_valid(str(d.get("createdBy")))}
    users = {str(u["_id"]): u for u in db["user"].find({"_id": {"$in": list(ids)}}, {"username": 1})}
    for doc in docs:
        creator = str(doc.get("createdBy"))
        if creator in users:
            doc["createdBy"] = users[creator]
    return docs


def insert_content(db, content: Content, user_id) -> str:
    doc = content.model_dump(by_alias=True)
    doc.update(isActive=True, createdBy=user_id)
    return create_document(db, COLLECTION, doc)


def get_content(db, content_id: str) -> dict:
    doc = db[COLLECTION].find_one({"_id": object_id(content_id), "isActive": True})
    if not doc:
        raise NotFoundError("Content not found")
    return serialize(populate_creators(db, [doc])[0])


def create_content(db, data: Mapping[str, Any], user: dict, request: Optional[Request] = None) -> dict:
    content = validate_content(data)
    if find_duplicate(db, content.platform, content.title, content.year):
        raise ConflictError("Content with the same platform, title and year already exists")

    content_id = insert_content(db, content, user["_id"])
    track_activity(db, user["_id"], "create", {"contentId": content_id, "title": content.title}, request)
    logger.info("Content created: %s (%s, %s)", content.title, content.platform, content.year)
    return get_content(db, content_id)


def update_content(db, content_id: str, data: Mapping[str, Any], user: dict, request: Optional[Request] = None) -> dict:
    oid = object_id(content_id)
    stored = db[COLLECTION].find_one({"_id": oid, "isActive": True})
    if not stored:
        raise NotFoundError("Content not found")

    try:
        changes = ContentUpdate.model_validate(dict(data)).model_dump(by_alias=True, exclude_unset=True)
    except PydanticValidationError as exc:
        raise ValidationError("Validation failed", validation_errors(exc))

    merged = dict(stored)
    if "dubbing" in changes:
        merged["dubbing"] = dict(stored.get("dubbing") or {}, **(changes.pop("dubbing") or {}))
    if "source" in changes and "sourceFlags" not in changes:
        # Let the new source re-derive its flags.
        merged.pop("sourceFlags", None)
    merged.update(changes)

    content = validate_content(merged)
    if find_duplicate(db, content.platform, content.title, content.year, exclude_id=oid):
        raise ConflictError("Content with the same platform, title and year already exists")

    db[COLLECTION].update_one({"_id": oid}, {"$set": dict(content.model_dump(by_alias=True), updatedAt=now())})
    track_activity(db, user["_id"], "update", {"contentId": content_id, "fields": sorted(data.keys())}, request)
    logger.info("Content updated: %s", content_id)
    return get_content(db, content_id)


def delete_content(db, content_id: str, user: dict, request: Optional[Request] = None) -> None:
    oid = object_id(content_id)
    result = db[COLLECTION].update_one({"_id": oid, "isActive": True}, {"$set": {"isActive": False, "updatedAt": now()}})
    if not result.matched_count:
        raise NotFoundError("Content not found")
    track_activity(db, user["_id"], "delete", {"contentId": content_id}, request)
    logger.info("Content deleted: %s", content_id)


def build_content_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    filt = build_match_stage(params)
    search = str(first(params.get("search")) or "").strip()
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        text_match = {"$or": [{"title": pattern}, {"selfDeclaredGenre": pattern}]}
        if "$or" in filt:
            filt["$and"] = [{"$or": filt.pop("$or")}, text_match]
        else:
            filt.update(text_match)
    return filt


def list_content(db, params: Mapping[str, Any]) -> Dict[str, Any]:
    filt = build_content_filter(params)
    sort = sort_spec(first(params.get("sortBy")), first(params.get("sortOrder")) or "desc")
    result = paginate(db[COLLECTION], filt, params.get("page"), params.get("limit"), sort)
    result["docs"] = serialize(populate_creators(db, result["docs"]))
    return result


def check_duplicate(db, platform: str, title: str, year: int) -> Dict[str, Any]:
    existing = find_duplicate(db, platform, title, year)
    return {
        "exists": existing is not None,
        "isDuplicate": existing is not None,
        "existingContent": serialize(existing) if existing else None,
    }


# -------- Routes --------

@router.get("")
def index(request: Request, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return success_response("Content retrieved successfully", list_content(db, flatten_query(request.query_params)))


@router.post("")
def create(request: Request, payload: Dict[str, Any] = Body(...), admin: dict = Depends(require_admin), db=Depends(get_db)):
    return success_response("Content created successfully", create_content(db, payload, admin, request), 201)


@router.post("/check-duplicate")
def duplicate(payload: DuplicateCheck, admin: dict = Depends(require_admin), db=Depends(get_db)):
    data = check_duplicate(db, payload.platform, payload.title, payload.year)
    message = "Duplicate content found" if data["exists"] else "No duplicate found"
    return success_response(message, data)


@router.get("/{content_id}")
def show(content_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return success_response("Content retrieved successfully", get_content(db, content_id))


@router.put("/{content_id}")
def update(
    content_id: str,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    return success_response("Content updated successfully", update_content(db, content_id, payload, admin, request))


@router.delete("/{content_id}")
def destroy(content_id: str, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    delete_content(db, content_id, admin, request)
    return success_response("Content deleted successfully")
