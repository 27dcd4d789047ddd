# tests/backend/credentials/test_resolver.py
from __future__ import annotations

import pytest

import config as cfg
from backend.credentials.resolver import CredentialResolver
from backend.xfyun.errors import CredentialMissing


class _DictStore:
    def __init__(self, data):
        self.data = data
        self.lookups = []

    def get(self, user_id, key):
        self.lookups.append((user_id, key))
        return self.data.get((user_id, key))


def test_settings_only(settings):
    cred = CredentialResolver().resolve()
    assert (cred.app_id, cred.api_key, cred.api_secret) == ("app-123", "key-abc", "secret-xyz")
    assert cred.domain == "iat"


def test_user_store_overrides_settings_per_field(settings):
    store = _DictStore({("u1", "apiKey"): "user-key", ("u1", "apiSecret"): "user-secret"})
    cred = CredentialResolver(store).resolve("u1")
    assert cred.app_id == "app-123"
    assert cred.api_key == "user-key"
    assert cred.api_secret == "user-secret"


def test_store_not_consulted_without_user(settings):
    store = _DictStore({})
    CredentialResolver(store).resolve(None)
    assert store.lookups == []


def test_missing_values_are_listed(caplog):
    s = cfg.Settings(xfyun_app_id="a")
    with caplog.at_level("WARNING"):
        with pytest.raises(CredentialMissing) as ei:
            CredentialResolver(settings=s).resolve()
    assert ei.value.missing == ["XFYUN_API_KEY", "XFYUN_API_SECRET"]
    assert "XFYUN_API_KEY" in ei.value.message
    assert "XFYUN_API_KEY" in caplog.text


def test_credential_repr_hides_secrets(settings):
    cred = CredentialResolver().resolve()
    assert "key-abc" not in repr(cred)
    assert "secret-xyz" not in repr(cred)
