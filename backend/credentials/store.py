# backend/credentials/store.py
from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import sqlite3
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

import config as cfg

log = logging.getLogger("dicta.secrets")

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16


class SecretStoreError(RuntimeError):
    pass


def derive_key(passphrase: str) -> bytes:
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def encrypt_secret(value: str, passphrase: str) -> str:
    """AES-256-GCM; returns base64(iv | tag | ciphertext)."""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(derive_key(passphrase)).encrypt(iv, value.encode("utf-8"), None)
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt_secret(payload: str, passphrase: str) -> str:
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SecretStoreError("invalid ciphertext encoding") from e
    if len(raw) <= IV_LENGTH + AUTH_TAG_LENGTH:
        raise SecretStoreError("invalid ciphertext format")
    iv = raw[:IV_LENGTH]
    tag = raw[IV_LENGTH:IV_LENGTH + AUTH_TAG_LENGTH]
    ciphertext = raw[IV_LENGTH + AUTH_TAG_LENGTH:]
    try:
        plain = AESGCM(derive_key(passphrase)).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise SecretStoreError("ciphertext failed authentication") from e
    return plain.decode("utf-8")


class UserSecretStore:
    """
    Per-user encrypted secrets in SQLite.

    One connection per store, shared across threads and serialized by a lock
    (the bridge reads from worker threads via asyncio.to_thread). Values are
    encrypted with a key derived from the configured passphrase.
    """

    def __init__(self, db_path: Optional[str] = None, passphrase: Optional[str] = None) -> None:
        self._db_path = db_path
        self._passphrase = passphrase
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def _resolve_passphrase(self) -> str:
        passphrase = self._passphrase or cfg.settings.secret_passphrase
        if not passphrase:
            raise SecretStoreError("DICTA_SECRET_PASSPHRASE is not configured")
        return passphrase

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        path = self._db_path or cfg.settings.db_path  # ensures data dir exists
        conn = sqlite3.connect(path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            if cfg.settings.db_wal:
                conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.DatabaseError as e:
            log.debug("SQLite pragmas not applied: %s", e)
        with conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_secrets (
                    user_id TEXT NOT NULL,
                    secret_key TEXT NOT NULL,
                    secret_ciphertext TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (user_id, secret_key)
                );
                """
            )
        self._conn = conn
        return conn

    def get(self, user_id: Optional[str], key: str) -> Optional[str]:
        """
        Decrypted secret, or None when absent. Lookup and decryption failures
        are logged (without secret material) and reported as absent.
        """
        if not user_id or not key:
            return None
        try:
            with self._lock:
                row = self._connect().execute(
                    "SELECT secret_ciphertext FROM user_secrets WHERE user_id = ? AND secret_key = ?;",
                    (user_id, key),
                ).fetchone()
        except sqlite3.Error as e:
            log.error("Failed to fetch secret %s: %s", key, e)
            return None

        ciphertext = row["secret_ciphertext"] if row else None
        if not ciphertext:
            return None
        try:
            return decrypt_secret(ciphertext, self._resolve_passphrase())
        except SecretStoreError as e:
            log.error("Failed to decrypt secret %s: %s", key, e)
            return None

    def put(self, user_id: str, key: str, value: str) -> None:
        ciphertext = encrypt_secret(value, self._resolve_passphrase())
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(
                    """
                    INSERT INTO user_secrets (user_id, secret_key, secret_ciphertext, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(user_id, secret_key) DO UPDATE SET
                        secret_ciphertext=excluded.secret_ciphertext,
                        updated_at=CURRENT_TIMESTAMP;
                    """,
                    (user_id, key, ciphertext),
                )

    def delete(self, user_id: str, key: str) -> bool:
        with self._lock:
            conn = self._connect()
            with conn:
                cur = conn.execute(
                    "DELETE FROM user_secrets WHERE user_id = ? AND secret_key = ?;",
                    (user_id, key),
                )
        return cur.rowcount > 0

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
