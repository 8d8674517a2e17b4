"""Response envelope helpers.

Success:  {"success": true, "data": ..., "message": ...}
Failure:  {"success": false, "message": ..., "status_code": ..., "errors": [...]}
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def error_response(
    status_code: int,
    message: str,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message, "status_code": status_code}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
