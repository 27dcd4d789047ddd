# client/api.py
from __future__ import annotations

import logging
from typing import Optional

import requests

import config as cfg

log = logging.getLogger("dicta.client.api")


class SpeechServiceError(RuntimeError):
    """Server-reported (or transport) failure; `message` is user-facing."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def server_url() -> str:
    return cfg.settings.server_url.rstrip("/")


def _headers(user_id: Optional[str]) -> dict:
    return {cfg.settings.user_id_header: user_id} if user_id else {}


def _error_from(r: requests.Response) -> SpeechServiceError:
    try:
        data = r.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return SpeechServiceError(str(data.get("error") or "INTERNAL_ERROR"), str(data["message"]))
    return SpeechServiceError("INTERNAL_ERROR", f"Speech service returned HTTP {r.status_code}.")


# ---------------- HTTP helpers ----------------
def post_speech(audio_base64: str, *, user_id: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Send one encoded utterance to the bridge and return its transcript."""
    try:
        r = requests.post(
            f"{server_url()}/speech/xfyun",
            json={"audioBase64": audio_base64},
            headers=_headers(user_id),
            timeout=timeout or cfg.settings.client_timeout_sec,
        )
    except requests.RequestException as e:
        log.warning("Speech service unreachable: %s", e)
        raise SpeechServiceError("NETWORK_ERROR", "Speech service is unreachable, please try again later.") from e

    if not r.ok:
        raise _error_from(r)

    try:
        text = r.json().get("text")
    except (ValueError, AttributeError):
        text = None
    if not isinstance(text, str):
        raise SpeechServiceError("INTERNAL_ERROR", "Speech service returned an unreadable response.")
    return text


def post_secret_test(key: str, *, user_id: str, timeout: float = 20.0) -> dict:
    try:
        r = requests.post(
            f"{server_url()}/settings/secrets/test",
            json={"key": key},
            headers=_headers(user_id),
            timeout=timeout,
        )
    except requests.RequestException as e:
        return {"ok": False, "message": str(e)}
    if not r.ok:
        err = _error_from(r)
        return {"ok": False, "message": err.message}
    return r.json()


def get_health(timeout: float = 2.0) -> dict:
    try:
        r = requests.get(f"{server_url()}/healthz", timeout=timeout)
        r.raise_for_status()
        return r.json()
    except Exception as e:
        return {"status": "down", "asr_configured": False, "error": str(e)}
