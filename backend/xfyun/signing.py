# backend/xfyun/signing.py
"""
Request signing for the XFYun WebSocket APIs.

The provider authenticates the upgrade request with an HMAC-SHA256 signature
over three pseudo-headers ("host", "date" and the request line), carried in
the query string rather than real headers. Both the dictation bridge and the
connectivity probe sign through `build_handshake`.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass
from email.utils import formatdate
from typing import Optional
from urllib.parse import quote, urlencode


@dataclass(frozen=True)
class SignedHandshake:
    url: str
    date: str
    authorization: str

    def __repr__(self) -> str:
        # url embeds the authorization; keep both out of reprs and logs
        return f"SignedHandshake(date={self.date!r})"


def rfc1123_date(timestamp: Optional[float] = None) -> str:
    """'Mon, 19 Oct 2026 08:00:00 GMT' for `timestamp` (default: now)."""
    return formatdate(timestamp, usegmt=True)


def canonical_string(host: str, date: str, path: str, method: str = "GET") -> str:
    return "\n".join([f"host: {host}", f"date: {date}", f"{method.upper()} {path} HTTP/1.1"])


def sign(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def build_authorization(*, api_key: str, api_secret: str, host: str, path: str, date: str) -> str:
    signature = sign(api_secret, canonical_string(host, date, path))
    origin = (
        f'api_key="{api_key}", algorithm="hmac-sha256", '
        f'headers="host date request-line", signature="{signature}"'
    )
    return base64.b64encode(origin.encode("utf-8")).decode("ascii")


def build_handshake(
    *,
    api_key: str,
    api_secret: str,
    host: str,
    path: str,
    date: str,
    scheme: str = "wss",
) -> SignedHandshake:
    """Pure: identical inputs always yield the identical handshake."""
    authorization = build_authorization(
        api_key=api_key, api_secret=api_secret, host=host, path=path, date=date
    )
    query = urlencode(
        [("authorization", authorization), ("date", date), ("host", host)],
        quote_via=quote,
    )
    return SignedHandshake(url=f"{scheme}://{host}{path}?{query}", date=date, authorization=authorization)
