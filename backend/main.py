# backend/main.py
from __future__ import annotations

from backend.util.logging_setup import init_logging
import config as cfg
from backend.api.app import create_app

init_logging(cfg.settings.log_level, debug_xfyun=cfg.settings.xfyun_debug)

app = create_app()
