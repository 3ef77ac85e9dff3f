import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials

from activity import track_activity
from database import create_document, get_db, now, object_id
from errors import AuthError, ConflictError, NotFoundError, ValidationError, success_response
from schemas import ChangePasswordRequest, LoginRequest, RefreshRequest, RegisterRequest, User
from security import (
    PRIVATE_USER_FIELDS,
    REFRESH,
    bearer_scheme,
    decode_token,
    get_current_user,
    hash_password,
    issue_tokens,
    load_active_user,
    public_user,
    user_from_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# -------- Service --------

def register_user(db, payload: RegisterRequest, request: Optional[Request] = None) -> dict:
    email = str(payload.email)
    if db["user"].find_one({"$or": [{"email": email}, {"username": payload.username}]}):
        raise ConflictError("User already exists with this email or username")

    user = User(username=payload.username, email=email, password_hash=hash_password(payload.password), role=payload.role)
    user_id = create_document(db, "user", user)
    doc = db["user"].find_one({"_id": object_id(user_id)}, PRIVATE_USER_FIELDS)

    track_activity(db, user_id, "register", {"username": payload.username, "email": email, "role": payload.role}, request)
    logger.info("New user registered: %s", email)
    return dict(user=doc, **issue_tokens(doc))


def authenticate_user(db, email: str, password: str, request: Optional[Request] = None) -> dict:
    user = db["user"].find_one({"email": email, "isActive": True})
    # Same message for unknown email and wrong password.
    if not user or not verify_password(password, user.get("passwordHash", "")):
        raise AuthError("Invalid credentials")

    stamp = now()
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"lastLogin": stamp, "updatedAt": stamp}})
    user["lastLogin"] = stamp

    track_activity(db, user["_id"], "login", request=request)
    logger.info("User logged in: %s", email)
    return dict(user=public_user(user), **issue_tokens(user))


def refresh_tokens(db, refresh_token: Optional[str]) -> dict:
    if not refresh_token:
        raise ValidationError("Refresh token is required")
    payload = decode_token(refresh_token, REFRESH)
    user = load_active_user(db, payload["id"])
    return issue_tokens(user)


def change_password(db, user: dict, current: str, new: str, request: Optional[Request] = None) -> None:
    stored = db["user"].find_one({"_id": user["_id"]})
    if not stored:
        raise NotFoundError("User not found")
    if not verify_password(current, stored.get("passwordHash", "")):
        raise ValidationError("Current password is incorrect")

    db["user"].update_one({"_id": stored["_id"]}, {"$set": {"passwordHash": hash_password(new), "updatedAt": now()}})
    track_activity(db, stored["_id"], "update", {"field": "password"}, request)
    logger.info("Password changed for user: %s", stored["email"])


# -------- Routes --------

@router.post("/register")
def register(payload: RegisterRequest, request: Request, db=Depends(get_db)):
    return success_response("User registered successfully", register_user(db, payload, request), 201)


@router.post("/login")
def login(payload: LoginRequest, request: Request, db=Depends(get_db)):
    return success_response("Login successful", authenticate_user(db, str(payload.email), payload.password, request))


@router.get("/verify-token")
def verify_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme), db=Depends(get_db)):
    user = user_from_token(db, credentials.credentials if credentials else None)
    return success_response("Token is valid", {"user": user})


@router.post("/refresh-token")
def refresh_token(payload: RefreshRequest, db=Depends(get_db)):
    return success_response("Token refreshed successfully", refresh_tokens(db, payload.refresh_token))


@router.post("/change-password")
def change_password_route(
    payload: ChangePasswordRequest,
    request: Request,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    change_password(db, user, payload.current_password, payload.new_password, request)
    return success_response("Password changed successfully")


@router.post("/logout")
def logout(request: Request, user: dict = Depends(get_current_user), db=Depends(get_db)):
    # Tokens are stateless; logging out only leaves an audit record.
    track_activity(db, user["_id"], "logout", request=request)
    logger.info("User logged out: %s", user.get("email"))
    return success_response("Logout successful")
