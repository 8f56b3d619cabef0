"""Shared error helpers and codes."""

from __future__ import annotations

from starlette.responses import JSONResponse


class ErrorCode:
    BAD_REQUEST = "Bad Request"
    VALIDATION_ERROR = "Validation Error"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "Not Found"
    INTERNAL_ERROR = "Internal Server Error"


def error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": code, "message": message}, status_code=status_code)
