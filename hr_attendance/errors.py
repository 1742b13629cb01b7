from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    kind = "ERROR"
    default_status_code = 400

    def __init__(self, code: str, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code or self.default_status_code
        self.code = code
        self.message = message


class NotFoundError(ApiError):
    kind = "NOT_FOUND"
    default_status_code = 404


class InvalidStateError(ApiError):
    kind = "INVALID_STATE"
    default_status_code = 409


class ValidationFailedError(ApiError):
    kind = "VALIDATION"
    default_status_code = 422


class ConflictError(ApiError):
    kind = "CONFLICT"
    default_status_code = 409


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    fields: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    if fields:
        payload["error"]["fields"] = fields
    return JSONResponse(status_code=status_code, content=payload)


def validation_fields(errors: list[dict[str, Any]]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for item in errors:
        location = ".".join(str(part) for part in item.get("loc", ()))
        if location and location not in fields:
            fields[location] = str(item.get("msg") or "Invalid value")
    return fields
