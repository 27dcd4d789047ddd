# backend/api/deps.py
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

from fastapi import Request

import config as cfg

T = TypeVar("T")


def current_user_id(request: Request) -> Optional[str]:
    """Caller id forwarded by the auth proxy, if any."""
    value = (request.headers.get(cfg.settings.user_id_header) or "").strip()
    return value or None


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message.get("type") == "http.disconnect":
            return


async def unless_disconnected(request: Request, work: Awaitable[T]) -> tuple[bool, Optional[T]]:
    """
    Run `work` while watching for the client to go away.

    Returns (True, result) when the work finished, (False, None) when the
    client disconnected first; in that case the work is cancelled, which
    closes any upstream session it owns. Exceptions from `work` propagate.
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.create_task(_wait_for_disconnect(request))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()
        await asyncio.gather(task, watcher, return_exceptions=True)

    if task.cancelled():
        return False, None
    return True, task.result()
