# backend/xfyun/errors.py
from __future__ import annotations

from typing import Optional, Sequence


class AsrError(Exception):
    """
    Base for every server-side dictation failure.

    `error_code` is the stable machine-readable code returned to clients;
    `retryable` tells the caller whether re-invoking may succeed.
    """

    error_code = "INTERNAL_ERROR"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(AsrError):
    error_code = "INVALID_REQUEST"


class CredentialMissing(AsrError):
    error_code = "NOT_CONFIGURED"

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        names = ", ".join(self.missing) or "XFYUN_APP_ID, XFYUN_API_KEY, XFYUN_API_SECRET"
        super().__init__(
            f"Speech recognition is not enabled: store XFYun keys in settings or configure {names}"
        )


class HandshakeFailure(AsrError):
    retryable = True

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class AsrTimeout(AsrError):
    retryable = True

    def __init__(self, stage: str, seconds: float) -> None:
        super().__init__(f"XFYun {stage} timed out after {seconds:g}s")
        self.stage = stage
        self.seconds = seconds


class UpstreamError(AsrError):
    def __init__(self, code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"XFYun returned error code {code}")
        self.code = code


class AsrConnectionError(AsrError):
    retryable = True


class ConnectionClosed(AsrError):
    retryable = True

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(reason or f"XFYun WebSocket closed with code {code}")
        self.code = code
        self.reason = reason


class MalformedMessage(AsrError):
    pass


class EmptyTranscript(AsrError):
    error_code = "EMPTY_TRANSCRIPT"
    retryable = True

    def __init__(self, message: str = "No speech was recognized, please try again.") -> None:
        super().__init__(message)
