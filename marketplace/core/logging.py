"""
Contractor Marketplace -- logging setup.

``configure_logging()`` installs one stdout handler on the root logger and
sets its level from ``config.LOG_LEVEL``.  The app calls it at import time
and the seed CLI calls it from ``main``; later calls are no-ops unless
``force`` is passed.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from marketplace import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-statement and per-request chatter
_QUIET_LOGGERS = ("sqlalchemy.pool", "uvicorn.access")

_configured = False


def resolve_level(name: Optional[str]) -> int:
    """Map a level name such as ``"debug"`` to its numeric value, else INFO."""
    value = logging.getLevelName((name or "").strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Optional[str] = None, *, force: bool = False) -> None:
    global _configured
    if _configured and not force:
        return

    root = logging.getLogger()
    root.setLevel(resolve_level(level or config.LOG_LEVEL))

    # uvicorn may already have attached its own handler
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # DB_ECHO turns SQL logging on through the engine itself
    if not config.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
