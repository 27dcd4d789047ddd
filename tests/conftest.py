# tests/conftest.py
from __future__ import annotations

import asyncio
import importlib.util
import os
import sys
import tempfile
import types

import pytest

# --- FORCE PROJECT ROOT ONTO sys.path ----------------------------------------

# Project root = parent of the "tests" directory
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# --- ENV ISOLATION ------------------------------------------------------------
# Runs at import time so the global `config.settings` is built from it.

_TMP_ROOT = tempfile.mkdtemp(prefix="dicta_test_")

for _name in list(os.environ):
    if _name.upper().startswith(("XFYUN_", "IFLYTEK_", "DICTA_XFYUN_")):
        del os.environ[_name]
os.environ.pop("SETTINGS_SECRET_PASSPHRASE", None)

os.environ["DICTA_DATA_DIR"] = os.path.join(_TMP_ROOT, "data")
os.environ["DICTA_DB_FILENAME"] = "dicta_test.sqlite3"
os.environ["DICTA_DB_WAL"] = "false"
os.environ["DICTA_SECRET_PASSPHRASE"] = "test-passphrase"

# Capture tests drive a fake device when PyAudio is not installed
if importlib.util.find_spec("pyaudio") is None:
    sys.modules["pyaudio"] = types.SimpleNamespace(PyAudio=None, paFloat32=1, paContinue=0)

# -----------------------------------------------------------------------------


@pytest.fixture
def settings(monkeypatch):
    """Fresh Settings with test credentials, installed as `config.settings`."""
    import config as cfg

    s = cfg.Settings(
        xfyun_app_id="app-123",
        xfyun_api_key="key-abc",
        xfyun_api_secret="secret-xyz",
    )
    monkeypatch.setattr(cfg, "settings", s, raising=True)
    return s


@pytest.fixture
def unconfigured(monkeypatch):
    import config as cfg

    s = cfg.Settings()
    monkeypatch.setattr(cfg, "settings", s, raising=True)
    return s


class FakeTransport:
    """
    Scripted upstream channel. `incoming` items are returned by recv() in
    order; an Exception instance is raised instead. When the script runs out
    recv() blocks until closed.
    """

    def __init__(self, incoming=None):
        self.sent: list[str] = []
        self.closed_with: tuple[int, str] | None = None
        self._queue: asyncio.Queue = asyncio.Queue()
        for item in incoming or []:
            self._queue.put_nowait(item)

    def push(self, item) -> None:
        self._queue.put_nowait(item)

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def recv(self) -> str:
        item = await self._queue.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)


class FakeConnector:
    def __init__(self, transport=None, error: BaseException | None = None, delay: float = 0.0):
        self.transport = transport
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def __call__(self, url, *, headers=None, open_timeout=10.0):
        self.calls.append({"url": url, "headers": headers, "open_timeout": open_timeout})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.transport


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def fake_connector():
    return FakeConnector
