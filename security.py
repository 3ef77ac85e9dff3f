import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

import config
from database import get_db, object_id
from errors import AuthError, ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

ACCESS = "access"
REFRESH = "refresh"

# Never sent to clients.
PRIVATE_USER_FIELDS = {"passwordHash": 0}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def _encode(claims: Dict[str, Any], secret: str, lifetime: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    payload = dict(claims, iat=int(issued.timestamp()), exp=int((issued + lifetime).timestamp()))
    return jwt.encode(payload, secret, algorithm=config.JWT_ALG)


def create_access_token(user: dict) -> str:
    claims = {"id": str(user["_id"]), "email": user["email"], "role": user.get("role", "user"), "type": ACCESS}
    return _encode(claims, config.JWT_SECRET, timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user: dict) -> str:
    claims = {"id": str(user["_id"]), "type": REFRESH, "jti": uuid.uuid4().hex}
    return _encode(claims, config.JWT_REFRESH_SECRET, timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS))


def issue_tokens(user: dict) -> Dict[str, str]:
    return {"token": create_access_token(user), "refreshToken": create_refresh_token(user)}


def decode_token(token: str, kind: str = ACCESS) -> Dict[str, Any]:
    secret = config.JWT_SECRET if kind == ACCESS else config.JWT_REFRESH_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[config.JWT_ALG])
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError:
        raise AuthError("Invalid token")
    if payload.get("type") != kind or not payload.get("id"):
        raise AuthError("Invalid token")
    return payload


def public_user(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    return {k: v for k, v in doc.items() if k not in PRIVATE_USER_FIELDS}


def load_active_user(db, user_id: str) -> dict:
    try:
        oid = object_id(user_id)
    except ValidationError:
        raise AuthError("Invalid token")
    user = db["user"].find_one({"_id": oid}, PRIVATE_USER_FIELDS)
    if not user or not user.get("isActive", False):
        logger.warning("Rejected token for missing or inactive user %s", user_id)
        raise AuthError("Invalid token or user not found")
    return user


def user_from_token(db, token: Optional[str]) -> dict:
    if not token:
        raise AuthError("Access denied. No token provided.")
    payload = decode_token(token, ACCESS)
    return load_active_user(db, payload["id"])


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> dict:
    token = credentials.credentials if credentials else None
    return user_from_token(db, token)


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise ForbiddenError("Access denied. Admin role required.")
    return user
