# backend/xfyun/transport.py
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from backend.xfyun.errors import AsrConnectionError, AsrTimeout, HandshakeFailure

log = logging.getLogger("dicta.xfyun.transport")

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class TransportClosed(Exception):
    """The peer (or the network) closed the message channel."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"closed with code {code}: {reason}" if reason else f"closed with code {code}")
        self.code = code
        self.reason = reason


class Transport(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> str: ...

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None: ...


Connector = Callable[..., Awaitable[Transport]]


@lru_cache(maxsize=1)
def _websocket_client() -> Any:
    """Import the websockets client once; later sessions reuse it."""
    from websockets.asyncio import client
    from websockets import exceptions

    log.debug("websockets client loaded")
    return client, exceptions


class WebSocketTransport:
    """Adapts a websockets ClientConnection to the Transport protocol."""

    def __init__(self, connection: Any, exceptions: Any) -> None:
        self._conn = connection
        self._exc = exceptions

    async def send(self, message: str) -> None:
        try:
            await self._conn.send(message)
        except self._exc.ConnectionClosed as e:
            raise self._closed(e) from e

    async def recv(self) -> str:
        try:
            data = await self._conn.recv()
        except self._exc.ConnectionClosed as e:
            raise self._closed(e) from e
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        await self._conn.close(code=code, reason=reason)

    @staticmethod
    def _closed(e: Any) -> TransportClosed:
        rcvd = getattr(e, "rcvd", None)
        if rcvd is None:
            return TransportClosed(ABNORMAL_CLOSURE, "")
        return TransportClosed(int(rcvd.code), rcvd.reason or "")


async def open_websocket(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    open_timeout: float = 10.0,
) -> WebSocketTransport:
    """
    Open the upstream channel. Failures surface as AsrError subclasses:
    upgrade rejected -> HandshakeFailure, open deadline -> AsrTimeout,
    anything at the socket level -> AsrConnectionError.
    """
    client, exc = _websocket_client()
    try:
        conn = await client.connect(
            url,
            additional_headers=headers or {},
            open_timeout=open_timeout,
            close_timeout=2.0,
            max_size=2**23,
        )
    except exc.InvalidStatus as e:
        status = getattr(getattr(e, "response", None), "status_code", None)
        raise HandshakeFailure(f"XFYun rejected the handshake (HTTP {status})", status=status) from e
    except exc.InvalidHandshake as e:
        raise HandshakeFailure(f"XFYun handshake failed: {e}") from e
    except (TimeoutError, asyncio.TimeoutError) as e:
        raise AsrTimeout("handshake", open_timeout) from e
    except (OSError, exc.WebSocketException) as e:
        raise AsrConnectionError(f"XFYun WebSocket connection failed: {e}") from e
    return WebSocketTransport(conn, exc)
