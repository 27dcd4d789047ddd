from __future__ import annotations

import asyncio
import logging

from starlette.types import ASGIApp, Scope, Receive, Send

log = logging.getLogger("dicta.middleware")


class GracefulCancelMiddleware:
    """
    Suppresses asyncio.CancelledError raised when a client drops mid-request
    (e.g. the user closes the page during recognition) or on shutdown.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await self.app(scope, receive, send)
        except asyncio.CancelledError:
            log.debug("Request cancelled: %s %s", scope.get("method", "-"), scope.get("path", "-"))
            return
