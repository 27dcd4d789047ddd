# backend/util/logging_setup.py
from __future__ import annotations

import logging
import re
import sys
from typing import Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# Signed URLs and authorization headers carry derived secrets
_SENSITIVE = re.compile(r"((?:authorization|signature)=)[^&\s\"']+", re.IGNORECASE)


class RedactSignaturesFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SENSITIVE.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def init_logging(level: Optional[str] = None, *, debug_xfyun: bool = False) -> None:
    """
    Single stdout handler: 'YYYY-mm-dd HH:MM:SS,ms | LEVEL | message'.
    Uvicorn/FastAPI loggers keep their own handlers.
    """
    lvl_name = (level or "info").lower()
    lvl = _LEVELS.get(lvl_name, logging.INFO)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    handler.addFilter(RedactSignaturesFilter())
    root.addHandler(handler)
    root.setLevel(lvl)

    if debug_xfyun:
        logging.getLogger("dicta.xfyun").setLevel(logging.DEBUG)
