"""
Audit trail of state-changing operations.

Records are append-only: the application never updates or deletes them.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import Request

from analytics_filters import first, parse_date
from database import create_document, object_id, paginate, serialize, sort_spec
from errors import ValidationError
from schemas import ACTIVITY_ACTIONS, Useractivity

logger = logging.getLogger(__name__)

COLLECTION = "useractivity"


def request_meta(request: Optional[Request]) -> Dict[str, Any]:
    if request is None:
        return {}
    return {
        "ip": request.client.host if request.client else None,
        "userAgent": request.headers.get("user-agent"),
    }


def track_activity(db, user_id, action: str, details: Optional[dict] = None, request: Optional[Request] = None) -> str:
    if action not in ACTIVITY_ACTIONS:
        raise ValidationError(f"Unknown activity action: {action}")
    payload = dict(details or {})
    payload.update(request_meta(request))
    record = Useractivity(user=object_id(user_id), action=action, details=payload)
    activity_id = create_document(db, COLLECTION, record.model_dump(by_alias=True))
    logger.debug("Activity tracked: %s by user %s", action, user_id)
    return activity_id


def _attach_users(db, docs):
    ids = {d["user"] for d in docs if d.get("user") is not None}
    users = {
        u["_id"]: u
        for u in db["user"].find({"_id": {"$in": list(ids)}}, {"username": 1, "email": 1, "role": 1})
    }
    for doc in docs:
        doc["user"] = users.get(doc.get("user"), doc.get("user"))
    return docs


def build_activity_filter(params: Mapping[str, Any], user_id: Optional[str] = None) -> dict:
    filt: Dict[str, Any] = {}
    owner = user_id or first(params.get("userId"))
    if owner:
        filt["user"] = object_id(owner)
    action = first(params.get("action"))
    if action:
        filt["action"] = action
    start = parse_date(params.get("startDate"))
    end = parse_date(params.get("endDate"))
    if start or end:
        filt["createdAt"] = {}
        if start:
            filt["createdAt"]["$gte"] = start
        if end:
            filt["createdAt"]["$lte"] = end
    return filt


def list_activities(db, params: Mapping[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
    filt = build_activity_filter(params, user_id)
    sort = sort_spec(
        first(params.get("sortBy") or params.get("sort")),
        first(params.get("sortOrder") or params.get("order")) or "desc",
    )
    result = paginate(db[COLLECTION], filt, params.get("page"), params.get("limit"), sort)
    result["docs"] = serialize(_attach_users(db, result["docs"]))
    return result
