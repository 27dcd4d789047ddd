# tests/backend/xfyun/test_transport.py
from __future__ import annotations

import asyncio
import types

import pytest

import backend.xfyun.transport as transport_mod
from backend.xfyun.errors import AsrConnectionError, AsrTimeout, HandshakeFailure
from backend.xfyun.transport import TransportClosed, WebSocketTransport, open_websocket


class _WsError(Exception):
    pass


class _InvalidHandshake(_WsError):
    pass


class _InvalidStatus(_InvalidHandshake):
    def __init__(self, status):
        super().__init__(f"HTTP {status}")
        self.response = types.SimpleNamespace(status_code=status)


class _ConnectionClosed(_WsError):
    def __init__(self, rcvd):
        super().__init__("closed")
        self.rcvd = rcvd


EXC = types.SimpleNamespace(
    WebSocketException=_WsError,
    InvalidHandshake=_InvalidHandshake,
    InvalidStatus=_InvalidStatus,
    ConnectionClosed=_ConnectionClosed,
)


class _Conn:
    def __init__(self, incoming=(), error=None):
        self.incoming = list(incoming)
        self.error = error
        self.sent = []
        self.closed = None

    async def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)

    async def recv(self):
        if self.error is not None:
            raise self.error
        return self.incoming.pop(0)

    async def close(self, code=1000, reason=""):
        self.closed = (code, reason)


def _install_client(monkeypatch, connect):
    client = types.SimpleNamespace(connect=connect)
    monkeypatch.setattr(transport_mod, "_websocket_client", lambda: (client, EXC))


@pytest.mark.asyncio
async def test_open_websocket_passes_headers_and_timeouts(monkeypatch):
    seen = {}
    conn = _Conn(incoming=[b'{"code": 0}'])

    async def connect(url, **kwargs):
        seen.update(url=url, **kwargs)
        return conn

    _install_client(monkeypatch, connect)
    t = await open_websocket("wss://h/p?x=1", headers={"Date": "d"}, open_timeout=3.0)

    assert seen["url"] == "wss://h/p?x=1"
    assert seen["additional_headers"] == {"Date": "d"}
    assert seen["open_timeout"] == 3.0
    # binary frames are decoded
    assert await t.recv() == '{"code": 0}'
    await t.close(4000, "timeout")
    assert conn.closed == (4000, "timeout")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,expected",
    [
        (_InvalidStatus(403), HandshakeFailure),
        (_InvalidHandshake("bad upgrade"), HandshakeFailure),
        (asyncio.TimeoutError(), AsrTimeout),
        (ConnectionRefusedError("refused"), AsrConnectionError),
        (_WsError("protocol"), AsrConnectionError),
    ],
)
async def test_open_websocket_maps_failures(monkeypatch, error, expected):
    async def connect(url, **kwargs):
        raise error

    _install_client(monkeypatch, connect)
    with pytest.raises(expected):
        await open_websocket("wss://h/p")


@pytest.mark.asyncio
async def test_rejected_status_is_kept(monkeypatch):
    async def connect(url, **kwargs):
        raise _InvalidStatus(401)

    _install_client(monkeypatch, connect)
    with pytest.raises(HandshakeFailure) as ei:
        await open_websocket("wss://h/p")
    assert ei.value.status == 401
    assert ei.value.retryable is True


@pytest.mark.asyncio
async def test_closed_frames_become_transport_closed():
    rcvd = types.SimpleNamespace(code=1000, reason="bye")
    t = WebSocketTransport(_Conn(error=_ConnectionClosed(rcvd)), EXC)
    with pytest.raises(TransportClosed) as ei:
        await t.recv()
    assert (ei.value.code, ei.value.reason) == (1000, "bye")


@pytest.mark.asyncio
async def test_missing_close_frame_is_abnormal():
    t = WebSocketTransport(_Conn(error=_ConnectionClosed(None)), EXC)
    with pytest.raises(TransportClosed) as ei:
        await t.send("x")
    assert ei.value.code == 1006
