"""
User administration: profile, listing with filters, role and status changes,
bulk operations and per-user activity history.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends, Request

from activity import list_activities, track_activity
from analytics_filters import first, flatten_query, parse_bool, parse_date
from database import get_db, now, object_id, paginate, serialize, sort_spec
from errors import ConflictError, NotFoundError, ValidationError, success_response
from schemas import BulkRoleUpdate, BulkStatusUpdate, ProfileUpdate, RoleUpdate
from security import PRIVATE_USER_FIELDS, get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

DATE_FILTERS = {
    "createdAt": (("createdAfter", "createdStart"), ("createdBefore", "createdEnd")),
    "lastLogin": (("lastLoginAfter", "lastLoginStart"), ("lastLoginBefore", "lastLoginEnd")),
}


# -------- Service --------

def build_user_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    role = first(params.get("role"))
    if role:
        filt["role"] = role

    active = parse_bool(params.get("isActive"))
    if active is not None:
        filt["isActive"] = active

    search = str(first(params.get("search")) or "").strip()
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        filt["$or"] = [{"username": pattern}, {"email": pattern}]

    for field, (after_keys, before_keys) in DATE_FILTERS.items():
        after = next((parse_date(params.get(k)) for k in after_keys if params.get(k)), None)
        before = next((parse_date(params.get(k)) for k in before_keys if params.get(k)), None)
        cond = {}
        if after:
            cond["$gte"] = after
        if before:
            cond["$lte"] = before
        if cond:
            filt[field] = cond
    return filt


def list_users(db, params: Mapping[str, Any]) -> Dict[str, Any]:
    filt = build_user_filter(params)
    sort = sort_spec(
        first(params.get("sortBy") or params.get("sort")),
        first(params.get("sortOrder") or params.get("order")) or "desc",
    )
    result = paginate(db["user"], filt, params.get("page"), params.get("limit"), sort, PRIVATE_USER_FIELDS)
    result["docs"] = serialize(result["docs"])
    return result


def get_user(db, user_id: str) -> dict:
    user = db["user"].find_one({"_id": object_id(user_id)}, PRIVATE_USER_FIELDS)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(db, user: dict, payload: ProfileUpdate, request: Optional[Request] = None) -> dict:
    changes = payload.model_dump(exclude_none=True)
    if "email" in changes:
        changes["email"] = str(changes["email"])
    if not changes:
        return get_user(db, user["_id"])

    clash = [{key: value} for key, value in changes.items()]
    if db["user"].find_one({"_id": {"$ne": user["_id"]}, "$or": clash}):
        raise ConflictError("Username or email already in use")

    db["user"].update_one({"_id": user["_id"]}, {"$set": dict(changes, updatedAt=now())})
    track_activity(db, user["_id"], "update", {"fields": sorted(changes)}, request)
    logger.info("Profile updated for user %s", user["_id"])
    return get_user(db, user["_id"])


def update_role(db, user_id: str, role: str, actor: dict, request: Optional[Request] = None) -> dict:
    user = get_user(db, user_id)
    old_role = user.get("role")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"role": role, "updatedAt": now()}})
    track_activity(
        db, actor["_id"], "role_change",
        {"targetUser": str(user["_id"]), "oldRole": old_role, "newRole": role}, request,
    )
    logger.info("Role of user %s changed from %s to %s", user["_id"], old_role, role)
    return get_user(db, user_id)


def toggle_status(db, user_id: str, actor: dict, request: Optional[Request] = None) -> dict:
    user = get_user(db, user_id)
    active = not user.get("isActive", True)
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"isActive": active, "updatedAt": now()}})
    track_activity(db, actor["_id"], "status_change", {"targetUser": str(user["_id"]), "isActive": active}, request)
    logger.info("User %s %s", user["_id"], "activated" if active else "deactivated")
    return get_user(db, user_id)


def delete_user(db, user_id: str, actor: dict, request: Optional[Request] = None) -> None:
    oid = object_id(user_id)
    if oid == actor["_id"]:
        raise ValidationError("You cannot delete your own account")
    user = get_user(db, oid)
    db["user"].delete_one({"_id": oid})
    track_activity(db, actor["_id"], "delete", {"targetUser": str(oid), "username": user.get("username")}, request)
    logger.info("User %s deleted by %s", oid, actor["_id"])


def _object_ids(user_ids: List[str]) -> list:
    return [object_id(uid) for uid in user_ids]


def bulk_update_roles(db, user_ids: List[str], role: str, actor: dict, request: Optional[Request] = None) -> Dict[str, int]:
    ids = _object_ids(user_ids)
    result = db["user"].update_many({"_id": {"$in": ids}}, {"$set": {"role": role, "updatedAt": now()}})
    track_activity(db, actor["_id"], "role_change", {"bulk": True, "userIds": user_ids, "newRole": role}, request)
    logger.info("Bulk role change to %s: %d matched", role, result.matched_count)
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


def bulk_toggle_status(db, user_ids: List[str], set_active: bool, actor: dict, request: Optional[Request] = None) -> Dict[str, int]:
    ids = _object_ids(user_ids)
    result = db["user"].update_many({"_id": {"$in": ids}}, {"$set": {"isActive": set_active, "updatedAt": now()}})
    track_activity(db, actor["_id"], "status_change", {"bulk": True, "userIds": user_ids, "isActive": set_active}, request)
    logger.info("Bulk status change to %s: %d matched", set_active, result.matched_count)
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


# -------- Routes --------

@router.get("/profile")
def read_profile(user: dict = Depends(get_current_user)):
    return success_response("Profile retrieved successfully", {"user": user})


@router.put("/profile")
def write_profile(payload: ProfileUpdate, request: Request, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return success_response("Profile updated successfully", {"user": update_profile(db, user, payload, request)})


@router.get("")
def index(request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    return success_response("Users retrieved successfully", list_users(db, flatten_query(request.query_params)))


@router.get("/activities/all")
def all_activities(request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    data = list_activities(db, flatten_query(request.query_params))
    return success_response("Activities retrieved successfully", data)


@router.put("/bulk/roles")
def bulk_roles(payload: BulkRoleUpdate, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    data = bulk_update_roles(db, payload.user_ids, payload.role, admin, request)
    return success_response(f"{data['modifiedCount']} users updated successfully", data)


@router.put("/bulk/status")
def bulk_status(payload: BulkStatusUpdate, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    data = bulk_toggle_status(db, payload.user_ids, payload.set_active, admin, request)
    return success_response(f"{data['modifiedCount']} users updated successfully", data)


@router.get("/{user_id}")
def show(user_id: str, admin: dict = Depends(require_admin), db=Depends(get_db)):
    return success_response("User retrieved successfully", {"user": get_user(db, user_id)})


@router.put("/{user_id}/role")
def change_role(user_id: str, payload: RoleUpdate, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    return success_response("User role updated successfully", {"user": update_role(db, user_id, payload.role, admin, request)})


@router.put("/{user_id}/toggle-status")
def change_status(user_id: str, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    user = toggle_status(db, user_id, admin, request)
    state = "activated" if user.get("isActive") else "deactivated"
    return success_response(f"User {state} successfully", {"user": user})


@router.delete("/{user_id}")
def destroy(user_id: str, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    delete_user(db, user_id, admin, request)
    return success_response("User deleted successfully")


@router.get("/{user_id}/activities")
def user_activities(user_id: str, request: Request, admin: dict = Depends(require_admin), db=Depends(get_db)):
    get_user(db, user_id)
    data = list_activities(db, flatten_query(request.query_params), user_id=user_id)
    return success_response("User activities retrieved successfully", data)
