# backend/api/routes/speech.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from backend.api.deps import current_user_id, read_json, unless_disconnected
from backend.api.errors import error_response
from backend.api.schemas import ErrorResponse, SpeechRequest, SpeechResponse
from backend.xfyun.errors import AsrError

router = APIRouter(tags=["speech"])
log = logging.getLogger("dicta.routes.speech")


@router.post(
    "/speech/xfyun",
    response_model=SpeechResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 422, 500, 503)},
)
async def transcribe(request: Request):
    """
    Recognize one base64 PCM16 clip. The upstream session is torn down if
    the client disconnects before the transcript is ready.
    """
    body = await read_json(request)
    try:
        payload = SpeechRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        payload = SpeechRequest()

    bridge = request.app.state.asr_bridge
    user_id = current_user_id(request)
    try:
        finished, text = await unless_disconnected(request, bridge.handle(payload.audio_base64, user_id))
    except AsrError as e:
        if e.error_code == "INTERNAL_ERROR":
            log.error("❌ XFYun speech recognition failed: %s", e.message)
        else:
            log.info("Speech request rejected (%s): %s", e.error_code, e.message)
        return error_response(e.error_code, e.message)
    except Exception as e:
        log.exception("❌ Speech recognition crashed: %s", e)
        return error_response("INTERNAL_ERROR", "Speech recognition request failed.")

    if not finished:
        log.info("🔌 Client disconnected; XFYun session cancelled.")
        return error_response("INTERNAL_ERROR", "Request cancelled.")

    return SpeechResponse(text=text)
