# backend/api/app.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config as cfg
from backend.api.routes.health import router as health_router
from backend.api.routes.secrets import router as secrets_router
from backend.api.routes.speech import router as speech_router
from backend.credentials.resolver import CredentialResolver
from backend.credentials.store import UserSecretStore
from backend.middleware.graceful_cancel import GracefulCancelMiddleware
from backend.xfyun.bridge import AsrBridgeService
from backend.xfyun.probe import ConnectivityProbe
from backend.xfyun.transport import Connector

log = logging.getLogger("dicta")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    missing = cfg.settings.missing_xfyun_settings()
    if missing:
        log.info("🟡 XFYun not configured globally (%s); relying on per-user secrets.", ", ".join(missing))
    else:
        log.info("🎙️ XFYun dictation bridge ready.")

    try:
        yield
    except (asyncio.CancelledError, KeyboardInterrupt):
        log.debug("Lifespan cancellation received during shutdown; suppressing exception.")
    finally:
        store = getattr(app.state, "secret_store", None)
        if store is not None:
            store.close()
        log.info("✅ Dicta server stopped.")


def create_app(
    *,
    store: Optional[UserSecretStore] = None,
    bridge: Optional[AsrBridgeService] = None,
    probe: Optional[ConnectivityProbe] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    s = cfg.settings
    app = FastAPI(title="Dicta", lifespan=_lifespan)

    # Client disconnects cancel the handler; keep those out of the error log
    app.add_middleware(GracefulCancelMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    store = store if store is not None else UserSecretStore()
    resolver = CredentialResolver(store)
    app.state.secret_store = store
    app.state.asr_bridge = bridge or AsrBridgeService(resolver, connector=connector)
    app.state.asr_probe = probe or ConnectivityProbe(resolver, connector=connector)

    app.include_router(health_router)
    app.include_router(speech_router)
    app.include_router(secrets_router)

    return app
