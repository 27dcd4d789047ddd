# backend/xfyun/session.py
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from backend.xfyun.errors import (
    AsrConnectionError,
    AsrError,
    AsrTimeout,
    ConnectionClosed,
    MalformedMessage,
    UpstreamError,
)
from backend.xfyun.results import parse_result
from backend.xfyun.signing import SignedHandshake
from backend.xfyun.transcript import TranscriptAccumulator
from backend.xfyun.transport import (
    NORMAL_CLOSURE,
    Connector,
    Transport,
    TransportClosed,
    open_websocket,
)

log = logging.getLogger("dicta.xfyun")

AUDIO_FORMAT = "audio/L16;rate=16000"
AUDIO_ENCODING = "raw"
STATUS_FIRST_FRAME = 0
STATUS_LAST_FRAME = 2
TIMEOUT_CLOSE_CODE = 4000


class SessionState(str, Enum):
    CREATED = "created"
    OPEN = "open"            # handshake acknowledged
    STREAMING = "streaming"  # audio frame sent
    CLOSING = "closing"      # end frame sent, waiting for results
    CLOSED = "closed"        # resolved
    ABORTED = "aborted"      # rejected, timed out or cancelled


@dataclass(frozen=True)
class BusinessParams:
    domain: str = "iat"
    language: str = "zh_cn"
    accent: str = "mandarin"
    dwa: str = "wpgs"


def first_frame(app_id: str, audio: str, business: BusinessParams) -> Dict[str, Any]:
    return {
        "common": {"app_id": app_id},
        "business": {
            "domain": business.domain,
            "language": business.language,
            "accent": business.accent,
            "dwa": business.dwa,
        },
        "data": {
            "status": STATUS_FIRST_FRAME,
            "format": AUDIO_FORMAT,
            "encoding": AUDIO_ENCODING,
            "audio": audio,
        },
    }


def last_frame() -> Dict[str, Any]:
    return {
        "data": {
            "status": STATUS_LAST_FRAME,
            "format": AUDIO_FORMAT,
            "encoding": AUDIO_ENCODING,
            "audio": "",
        }
    }


class AsrSession:
    """
    One dictation round trip over the upstream WebSocket.

    Events (open, message, close, transport error, deadline) race to settle a
    single-assignment future; whichever settles first wins and every later
    event is ignored. `run()` owns the transport: it is closed on every exit
    path, including caller cancellation.
    """

    kind = "recognition"

    def __init__(
        self,
        *,
        app_id: str,
        handshake: SignedHandshake,
        audio: str,
        business: Optional[BusinessParams] = None,
        connector: Optional[Connector] = None,
        timeout: float = 25.0,
        handshake_timeout: float = 10.0,
    ) -> None:
        self.app_id = app_id
        self.handshake = handshake
        self.audio = audio
        self.business = business or BusinessParams()
        self.timeout = float(timeout)
        self.handshake_timeout = float(handshake_timeout)
        self.state = SessionState.CREATED
        self.transcript = TranscriptAccumulator()

        self._connector: Connector = connector or open_websocket
        self._transport: Optional[Transport] = None
        self._outcome: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._close_code = NORMAL_CLOSURE
        self._close_reason = ""

    @property
    def settled(self) -> bool:
        return self._outcome is not None and self._outcome.done()

    async def run(self) -> str:
        if self._outcome is not None:
            raise RuntimeError("XFYun session can only run once")
        loop = asyncio.get_running_loop()
        self._outcome = loop.create_future()
        self._timer = loop.call_later(self.timeout, self._on_timeout)
        pump = asyncio.create_task(self._pump(), name=f"xfyun-{self.kind}")
        try:
            return await self._outcome
        except asyncio.CancelledError:
            if self.state not in (SessionState.CLOSED, SessionState.ABORTED):
                self.state = SessionState.ABORTED
            log.info("XFYun %s session cancelled by caller", self.kind)
            raise
        finally:
            self._clear_timer()
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)
            await self._shutdown_transport()

    # ---------- event sources ----------

    async def _pump(self) -> None:
        try:
            transport = await self._connector(
                self.handshake.url,
                headers={"Date": self.handshake.date},
                open_timeout=self.handshake_timeout,
            )
        except AsrError as e:
            self._reject(e)
            return
        except Exception as e:
            self._reject(AsrConnectionError(f"XFYun WebSocket connection failed: {e}"))
            return

        self._transport = transport
        if self.settled:
            return
        self._advance(SessionState.OPEN)

        try:
            await transport.send(json.dumps(first_frame(self.app_id, self.audio, self.business), ensure_ascii=False))
            self._advance(SessionState.STREAMING)
            log.debug("XFYun first frame sent | audio_length=%d", len(self.audio))

            await transport.send(json.dumps(last_frame()))
            self._advance(SessionState.CLOSING)
            log.debug("XFYun end frame sent")

            while not self.settled:
                self._on_message(await transport.recv())
        except TransportClosed as e:
            self._on_close(e.code, e.reason)
        except Exception as e:
            self._reject(AsrConnectionError(f"XFYun WebSocket failed: {e}"))

    def _on_message(self, raw: str) -> None:
        try:
            payload = json.loads(raw)
        except ValueError as e:
            self._reject(MalformedMessage(f"Failed to parse XFYun response: {e}"))
            return
        if not isinstance(payload, dict):
            self._reject(MalformedMessage("XFYun response is not a JSON object"))
            return

        code = payload.get("code")
        if code is None:
            code = 0
        if code != 0:
            log.debug("XFYun error response | code=%s message=%s", code, payload.get("message"))
            self._reject(UpstreamError(code, payload.get("message")))
            return

        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        status = data.get("status")
        result = parse_result(data.get("result"))
        if result is not None:
            self.transcript.apply(result)
            log.debug(
                "XFYun partial | sn=%s pgs=%s rg=%s status=%s length=%d",
                result.sn, result.operation.value, result.range, status, len(self.transcript.render()),
            )
        else:
            log.debug("XFYun result not understood | status=%s has_result=%s", status, bool(data.get("result")))

        if status == STATUS_LAST_FRAME:
            text = self.transcript.render().strip()
            log.debug("XFYun recognition complete | length=%d", len(text))
            self._resolve(text)

    def _on_close(self, code: int, reason: str) -> None:
        log.debug("XFYun WebSocket closed | code=%s reason=%s", code, reason)
        if self.settled:
            return
        # Some responses only signal completion by closing normally
        if code == NORMAL_CLOSURE:
            self._resolve(self.transcript.render().strip())
        else:
            self._reject(ConnectionClosed(code, reason))

    def _on_timeout(self) -> None:
        self._timer = None
        if self.settled:
            return
        log.warning("XFYun %s session timed out after %gs (state=%s)", self.kind, self.timeout, self.state.value)
        self._reject(AsrTimeout("session", self.timeout), close_code=TIMEOUT_CLOSE_CODE, reason="timeout")

    # ---------- settlement ----------

    def _advance(self, state: SessionState) -> None:
        if self.settled:
            return
        log.debug("XFYun %s session %s → %s", self.kind, self.state.value, state.value)
        self.state = state

    def _resolve(self, value: str, *, reason: str = "") -> bool:
        if self.settled:
            return False
        self._clear_timer()
        self.state = SessionState.CLOSED
        self._close_code, self._close_reason = NORMAL_CLOSURE, reason
        self._outcome.set_result(value)
        return True

    def _reject(self, error: AsrError, *, close_code: int = NORMAL_CLOSURE, reason: str = "") -> bool:
        if self.settled:
            return False
        self._clear_timer()
        self.state = SessionState.ABORTED
        self._close_code, self._close_reason = close_code, reason
        log.debug("XFYun %s session aborted: %s", self.kind, error)
        self._outcome.set_exception(error)
        return True

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _shutdown_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await transport.close(self._close_code, self._close_reason)
        except Exception as e:
            log.debug("XFYun WebSocket close failed: %s", e)
