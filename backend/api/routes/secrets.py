# backend/api/routes/secrets.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from backend.api.deps import current_user_id, read_json
from backend.api.errors import error_response
from backend.api.schemas import ErrorResponse, SecretTestRequest, SecretTestResponse

router = APIRouter(prefix="/settings/secrets", tags=["settings"])
log = logging.getLogger("dicta.routes.secrets")


@router.post(
    "/test",
    response_model=SecretTestResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 500)},
)
async def test_secret(request: Request):
    """Check the caller's XFYun credentials with a short-lived handshake."""
    user_id = current_user_id(request)
    if not user_id:
        return error_response("UNAUTHORIZED", "Please sign in before testing keys.")

    body = await read_json(request)
    try:
        payload = SecretTestRequest.model_validate(body)
    except ValidationError:
        return error_response("INVALID_REQUEST", "Unsupported secret key.")

    probe = request.app.state.asr_probe
    try:
        result = await probe.check(user_id)
    except Exception as e:
        log.exception("❌ Secret test for %s failed: %s", payload.key, e)
        return error_response("INTERNAL_ERROR", "Test failed, please try again later.")

    log.info("Secret test for %s: %s", payload.key, "ok" if result.ok else "failed")
    return SecretTestResponse(ok=result.ok, message=result.message)
