# backend/xfyun/probe.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from backend.xfyun.bridge import XfyunEndpoint
from backend.xfyun.errors import AsrError, CredentialMissing, UpstreamError
from backend.xfyun.session import AsrSession

log = logging.getLogger("dicta.xfyun.probe")

_MISSING_MESSAGES = {
    "XFYUN_APP_ID": "XFYun App ID not found, cannot open a connection.",
    "XFYUN_API_KEY": "XFYun API Key not found, please configure it first.",
    "XFYUN_API_SECRET": "XFYun API Secret not found, please configure it first.",
}


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    message: str


class ProbeSession(AsrSession):
    """
    Credential check: same handshake and frames as recognition, but with an
    empty audio payload. The first `code == 0` response proves the signature
    was accepted; unreadable messages are ignored.
    """

    kind = "probe"

    def _on_message(self, raw: str) -> None:
        try:
            payload = json.loads(raw)
        except ValueError:
            log.debug("Ignoring unreadable probe response")
            return
        if not isinstance(payload, dict):
            return

        code = payload.get("code")
        if isinstance(code, int) and code != 0:
            self._reject(UpstreamError(code, f"XFYun returned error code {code}"))
        elif code == 0:
            self._resolve("", reason="ok")


class ConnectivityProbe(XfyunEndpoint):
    async def check(self, user_id: Optional[str] = None) -> ProbeResult:
        try:
            credential = await self._credential(user_id)
        except CredentialMissing as e:
            return ProbeResult(ok=False, message=_MISSING_MESSAGES.get(e.missing[0], e.message))

        session = self._session(ProbeSession, credential, "", self.settings.xfyun_probe_timeout_sec)
        try:
            await session.run()
        except AsrError as e:
            log.info("XFYun credential probe failed: %s", e.message)
            return ProbeResult(ok=False, message=e.message)

        log.info("XFYun credential probe succeeded")
        return ProbeResult(ok=True, message="XFYun WebSocket handshake succeeded.")
