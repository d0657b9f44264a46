"""
Response envelope shared by every JSON endpoint:

    {"success": bool, "message": str, "data"?: ..., "errors"?: [...]}
"""
from typing import Any, Optional

from fastapi.responses import JSONResponse


def success_response(
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200,
) -> JSONResponse:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=body)


def error_response(
    status_code: int,
    message: str,
    errors: Optional[list] = None,
    data: Optional[Any] = None,
) -> JSONResponse:
    body = {"success": False, "message": message}
    if data is not None:
        body["data"] = data
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)
