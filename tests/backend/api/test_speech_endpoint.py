# tests/backend/api/test_speech_endpoint.py
from __future__ import annotations

import asyncio
import base64
import json

import pytest
from fastapi.testclient import TestClient

from backend.api.app import create_app
from backend.api.deps import unless_disconnected
from backend.credentials.resolver import CredentialResolver
from backend.xfyun.bridge import AsrBridgeService
from backend.xfyun.errors import AsrTimeout, UpstreamError

AUDIO = base64.b64encode(b"\x10\x00" * 320).decode()


class _NullStore:
    def get(self, user_id, key):
        return None

    def close(self):
        pass


class _FakeBridge:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def handle(self, audio, user_id=None):
        self.calls.append((audio, user_id))
        if self.error is not None:
            raise self.error
        return self.result


def _client(bridge):
    return TestClient(create_app(store=_NullStore(), bridge=bridge, probe=object()))


def test_speech_returns_text_and_forwards_user(settings):
    bridge = _FakeBridge(result="你好世界")
    resp = _client(bridge).post("/speech/xfyun", json={"audioBase64": AUDIO}, headers={"X-User-Id": "u-1"})

    assert resp.status_code == 200
    assert resp.json() == {"text": "你好世界"}
    assert bridge.calls == [(AUDIO, "u-1")]


@pytest.mark.parametrize("body", [{}, {"audioBase64": ""}, {"audioBase64": 12}, {"audio": AUDIO}])
def test_speech_rejects_missing_audio(settings, fake_connector, body):
    connector = fake_connector()
    bridge = AsrBridgeService(CredentialResolver(), connector=connector)
    resp = _client(bridge).post("/speech/xfyun", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_REQUEST"
    assert connector.calls == []


def test_speech_rejects_non_json_body(settings, fake_connector):
    bridge = AsrBridgeService(CredentialResolver(), connector=fake_connector())
    resp = _client(bridge).post("/speech/xfyun", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_REQUEST"


def test_speech_not_configured(unconfigured, fake_connector):
    bridge = AsrBridgeService(CredentialResolver(_NullStore()), connector=fake_connector())
    resp = _client(bridge).post("/speech/xfyun", json={"audioBase64": AUDIO})

    assert resp.status_code == 503
    body = resp.json()
    assert body["error"] == "NOT_CONFIGURED"
    assert "XFYUN_APP_ID" in body["message"]


def test_speech_empty_transcript(settings, fake_transport, fake_connector):
    transport = fake_transport([json.dumps({"code": 0, "data": {"status": 2}})])
    bridge = AsrBridgeService(CredentialResolver(), connector=fake_connector(transport))
    resp = _client(bridge).post("/speech/xfyun", json={"audioBase64": AUDIO})

    assert resp.status_code == 422
    assert resp.json() == {"error": "EMPTY_TRANSCRIPT", "message": "No speech was recognized, please try again."}


@pytest.mark.parametrize(
    "error,message",
    [
        (UpstreamError(10165, "invalid handle"), "invalid handle"),
        (AsrTimeout("session", 25), "XFYun session timed out after 25s"),
    ],
)
def test_speech_session_failures_are_internal_errors(settings, error, message):
    resp = _client(_FakeBridge(error=error)).post("/speech/xfyun", json={"audioBase64": AUDIO})
    assert resp.status_code == 500
    assert resp.json() == {"error": "INTERNAL_ERROR", "message": message}


def test_speech_unexpected_exception_is_logged(settings, caplog):
    with caplog.at_level("ERROR"):
        resp = _client(_FakeBridge(error=RuntimeError("boom"))).post("/speech/xfyun", json={"audioBase64": AUDIO})
    assert resp.status_code == 500
    assert resp.json()["error"] == "INTERNAL_ERROR"
    assert "boom" in caplog.text


class _DisconnectingRequest:
    async def receive(self):
        await asyncio.sleep(0.01)
        return {"type": "http.disconnect"}


class _PatientRequest:
    async def receive(self):
        await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_disconnect_cancels_running_work():
    cancelled = asyncio.Event()

    async def work():
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    finished, result = await unless_disconnected(_DisconnectingRequest(), work())
    assert finished is False
    assert result is None
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_finished_work_wins_over_watcher():
    async def work():
        return "text"

    assert await unless_disconnected(_PatientRequest(), work()) == (True, "text")


@pytest.mark.asyncio
async def test_work_errors_propagate():
    async def work():
        raise UpstreamError(1, "bad")

    with pytest.raises(UpstreamError):
        await unless_disconnected(_PatientRequest(), work())
