# backend/api/schemas.py
from __future__ import annotations
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SpeechRequest(BaseModel):
    # Clients send camelCase; unknown fields are tolerated
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    audio_base64: Optional[str] = Field(default=None, alias="audioBase64")


class SpeechResponse(_StrictModel):
    text: str


class ErrorResponse(_StrictModel):
    error: str
    message: str


class SecretTestRequest(_StrictModel):
    key: Literal["xfyunApiKey", "xfyunAppSecret"]


class SecretTestResponse(_StrictModel):
    ok: bool
    message: str


class HealthResponse(_StrictModel):
    status: str
    asr_configured: bool
