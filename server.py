# server.py
from __future__ import annotations

import sys

import uvicorn

import config as cfg
from backend.util.logging_setup import init_logging


def main() -> int:
    s = cfg.settings
    init_logging(s.log_level, debug_xfyun=s.xfyun_debug)

    # Reload needs an import string; the app module configures itself
    config = uvicorn.Config(
        app="backend.main:app",
        host=s.server_host,
        port=int(s.server_port),
        reload=s.uvicorn_reload,
        log_level=s.log_level,
        access_log=s.uvicorn_access_log,
        timeout_graceful_shutdown=3,
        timeout_keep_alive=5,
    )
    server = uvicorn.Server(config)

    try:
        server.run()
        return 0
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
