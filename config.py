# config.py
"""
Global configuration for Dicta.

Usage (preferred):
    import config as cfg
    s = cfg.settings
    print(s.sample_rate)

Override via env vars (prefix DICTA_, case-insensitive), e.g.:
  DICTA_LOG_LEVEL=debug
  DICTA_SERVER_PORT=8000
  DICTA_CORS_ALLOW_ORIGINS='["http://localhost:3000"]'
  DICTA_XFYUN_APP_ID=...
  DICTA_XFYUN_API_KEY=...
  DICTA_XFYUN_API_SECRET=...
  DICTA_SECRET_PASSPHRASE=...

The provider credentials also accept the legacy names XFYUN_APP_ID,
XFYUN_API_KEY, XFYUN_API_SECRET and their IFLYTEK_* equivalents.
"""
from __future__ import annotations

import os
from typing import List, Optional, Literal
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["debug", "info", "warning", "error", "critical"]


def _env_aliases(name: str, *legacy: str) -> AliasChoices:
    return AliasChoices(name, f"DICTA_{name.upper()}", *legacy)


class Settings(BaseSettings):
    # ---- Audio / capture ----
    # Target rate for the upstream PCM payload; capture runs at the device rate.
    sample_rate: int = 16_000
    chunk: int = 4096
    input_device_index: Optional[int] = None

    # ---- Server ----
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    uvicorn_access_log: bool = False
    uvicorn_reload: bool = False

    # Header carrying the caller's user id (set by the auth proxy in front of us)
    user_id_header: str = "X-User-Id"

    # Logging
    log_level: LogLevel = "info"

    # ---- Dictation client ----
    server_url: str = "http://127.0.0.1:8000"
    client_timeout_sec: float = 60.0

    # ---- XFYun streaming dictation ----
    xfyun_app_id: Optional[str] = Field(
        default=None,
        validation_alias=_env_aliases("xfyun_app_id", "XFYUN_APP_ID", "IFLYTEK_APP_ID"),
    )
    xfyun_api_key: Optional[str] = Field(
        default=None,
        validation_alias=_env_aliases("xfyun_api_key", "XFYUN_API_KEY", "IFLYTEK_API_KEY"),
    )
    xfyun_api_secret: Optional[str] = Field(
        default=None,
        validation_alias=_env_aliases(
            "xfyun_api_secret",
            "XFYUN_API_SECRET",
            "XFYUN_APP_SECRET",
            "IFLYTEK_API_SECRET",
            "IFLYTEK_APP_SECRET",
        ),
    )
    xfyun_domain: str = "iat"
    xfyun_scheme: str = "wss"
    xfyun_host: str = "iat-api.xfyun.cn"
    xfyun_path: str = "/v2/iat"
    xfyun_language: str = "zh_cn"
    xfyun_accent: str = "mandarin"
    # "wpgs" enables dynamic correction (sn/pgs/rg partial results)
    xfyun_partial_results: str = "wpgs"
    xfyun_session_timeout_sec: float = 25.0
    xfyun_probe_timeout_sec: float = 12.0
    xfyun_handshake_timeout_sec: float = 10.0
    xfyun_debug: bool = False

    # ---- Per-user secret store ----
    data_dir: str = "data"
    db_filename: str = "dicta.sqlite3"
    db_wal: bool = True
    secret_passphrase: Optional[str] = Field(
        default=None,
        validation_alias=_env_aliases("secret_passphrase", "SETTINGS_SECRET_PASSPHRASE"),
    )

    model_config = SettingsConfigDict(
        env_prefix="DICTA_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def db_path(self) -> str:
        # Resolve to absolute path and ensure folder exists when accessed
        path = os.path.abspath(os.path.join(self.data_dir, self.db_filename))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return path

    @property
    def xfyun_endpoint(self) -> str:
        return f"{self.xfyun_scheme}://{self.xfyun_host}{self.xfyun_path}"

    def missing_xfyun_settings(self) -> List[str]:
        """Env names of the process-wide provider credentials that are unset."""
        pairs = (
            ("XFYUN_APP_ID", self.xfyun_app_id),
            ("XFYUN_API_KEY", self.xfyun_api_key),
            ("XFYUN_API_SECRET", self.xfyun_api_secret),
        )
        return [name for name, value in pairs if not value]

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, v: str) -> LogLevel:
        vv = str(v).lower().strip()
        return vv if vv in {"debug", "info", "warning", "error", "critical"} else "info"  # type: ignore[return-value]

    @field_validator("xfyun_app_id", "xfyun_api_key", "xfyun_api_secret", "secret_passphrase", mode="before")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> Optional[str]:
        if v is None:
            return None
        vv = str(v).strip()
        return vv or None


# Single global instance
settings = Settings()
