# backend/credentials/resolver.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import config as cfg
from backend.xfyun.errors import CredentialMissing

log = logging.getLogger("dicta.credentials")

# Keys under which users store their XFYun credentials
APP_ID_KEY = "appId"
API_KEY_KEY = "apiKey"
API_SECRET_KEY = "apiSecret"


class SecretSource(Protocol):
    def get(self, user_id: Optional[str], key: str) -> Optional[str]: ...


@dataclass(frozen=True)
class AsrCredential:
    app_id: str
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    domain: str = "iat"


class CredentialResolver:
    """
    Per-request XFYun credentials: the caller's stored secrets first, then
    process-wide settings for any value the user has not stored.
    """

    def __init__(self, store: Optional[SecretSource] = None, settings: Optional[cfg.Settings] = None) -> None:
        self.store = store
        self._settings = settings

    @property
    def settings(self) -> cfg.Settings:
        return self._settings or cfg.settings

    def _from_store(self, user_id: Optional[str], key: str) -> Optional[str]:
        if self.store is None or not user_id:
            return None
        return self.store.get(user_id, key) or None

    def resolve(self, user_id: Optional[str] = None) -> AsrCredential:
        s = self.settings
        app_id = self._from_store(user_id, APP_ID_KEY) or s.xfyun_app_id
        api_key = self._from_store(user_id, API_KEY_KEY) or s.xfyun_api_key
        api_secret = self._from_store(user_id, API_SECRET_KEY) or s.xfyun_api_secret

        missing = [
            name
            for name, value in (
                ("XFYUN_APP_ID", app_id),
                ("XFYUN_API_KEY", api_key),
                ("XFYUN_API_SECRET", api_secret),
            )
            if not value
        ]
        if missing:
            log.warning("XFYun credentials missing, please set: %s", ", ".join(missing))
            raise CredentialMissing(missing)

        return AsrCredential(app_id=app_id, api_key=api_key, api_secret=api_secret, domain=s.xfyun_domain)
