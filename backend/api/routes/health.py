# backend/api/routes/health.py
from __future__ import annotations

import logging
from fastapi import APIRouter

import config as cfg
from backend.api.schemas import HealthResponse

router = APIRouter(tags=["health"])
log = logging.getLogger("dicta.routes.health")


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    """
    Lightweight liveness probe.
    Reports whether process-wide XFYun credentials are configured; per-user
    secrets are not consulted here.
    """
    return HealthResponse(status="ok", asr_configured=not cfg.settings.missing_xfyun_settings())
