"""
Error taxonomy and the response envelope shared by every route.

Services raise one of the AppError subclasses; the handlers registered in
main.py turn them into ``{success: false, message, ...}`` bodies.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    status_code = 400


class ConflictError(ValidationError):
    status_code = 409


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ServerError(AppError):
    status_code = 500


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def encode(data: Any) -> Any:
    return jsonable_encoder(data, custom_encoder={ObjectId: str})


def success_response(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    body = {"success": True, "message": message, "data": encode(data), "timestamp": _timestamp()}
    return JSONResponse(status_code=status_code, content=body)


def error_response(message: str, status_code: int = 500, errors: Optional[List[Any]] = None) -> JSONResponse:
    body = {"success": False, "message": message, "timestamp": _timestamp()}
    if errors:
        body["errors"] = encode(errors)
    return JSONResponse(status_code=status_code, content=body)
