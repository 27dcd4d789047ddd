# backend/api/errors.py
from __future__ import annotations

from fastapi.responses import JSONResponse

from backend.api.schemas import ErrorResponse

ERROR_STATUS = {
    "INVALID_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "EMPTY_TRANSCRIPT": 422,
    "INTERNAL_ERROR": 500,
    "NOT_CONFIGURED": 503,
}


def error_response(code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(code, 500),
        content=ErrorResponse(error=code, message=message).model_dump(),
    )
