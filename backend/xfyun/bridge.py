# backend/xfyun/bridge.py
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import time
from typing import Callable, Optional, Type

import config as cfg
from backend.credentials.resolver import AsrCredential, CredentialResolver
from backend.xfyun.errors import EmptyTranscript, InvalidRequest
from backend.xfyun.session import AsrSession, BusinessParams
from backend.xfyun.signing import build_handshake, rfc1123_date
from backend.xfyun.transport import Connector

log = logging.getLogger("dicta.xfyun")


class XfyunEndpoint:
    """Signs and builds sessions against the configured XFYun endpoint."""

    def __init__(
        self,
        resolver: CredentialResolver,
        *,
        connector: Optional[Connector] = None,
        settings: Optional[cfg.Settings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resolver = resolver
        self._connector = connector
        self._settings = settings
        self._clock = clock

    @property
    def settings(self) -> cfg.Settings:
        return self._settings or cfg.settings

    async def _credential(self, user_id: Optional[str]) -> AsrCredential:
        # The secret store is SQLite; keep it off the event loop
        return await asyncio.to_thread(self.resolver.resolve, user_id)

    def _session(
        self,
        session_cls: Type[AsrSession],
        credential: AsrCredential,
        audio: str,
        timeout: float,
    ) -> AsrSession:
        s = self.settings
        # Fresh date per request: the provider rejects stale signatures
        handshake = build_handshake(
            api_key=credential.api_key,
            api_secret=credential.api_secret,
            host=s.xfyun_host,
            path=s.xfyun_path,
            date=rfc1123_date(self._clock()),
            scheme=s.xfyun_scheme,
        )
        business = BusinessParams(
            domain=credential.domain,
            language=s.xfyun_language,
            accent=s.xfyun_accent,
            dwa=s.xfyun_partial_results,
        )
        return session_cls(
            app_id=credential.app_id,
            handshake=handshake,
            audio=audio,
            business=business,
            connector=self._connector,
            timeout=timeout,
            handshake_timeout=s.xfyun_handshake_timeout_sec,
        )


def _validate_audio(audio: object) -> str:
    if not isinstance(audio, str) or not audio.strip():
        raise InvalidRequest("Missing audio data")
    try:
        base64.b64decode(audio, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequest("Audio data is not valid base64") from e
    return audio


class AsrBridgeService(XfyunEndpoint):
    """Bridges one pre-recorded utterance to XFYun streaming dictation."""

    async def handle(self, audio_payload: str, user_id: Optional[str] = None) -> str:
        audio = _validate_audio(audio_payload)
        log.debug("Dictation request | audio_length=%d", len(audio))

        credential = await self._credential(user_id)
        session = self._session(AsrSession, credential, audio, self.settings.xfyun_session_timeout_sec)
        log.debug("Opening XFYun WebSocket | endpoint=%s domain=%s", self.settings.xfyun_endpoint, credential.domain)

        text = await session.run()
        if not text:
            raise EmptyTranscript()
        log.info("✅ Dictation done | text_length=%d", len(text))
        return text
