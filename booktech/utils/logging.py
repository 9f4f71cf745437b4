"""Named loggers for the store.

Every module calls ``get_logger("<area>")``; loggers live under the
``booktech`` namespace and share one stderr handler installed on the root
``booktech`` logger, so levels set through ``BOOKTECH_LOG_LEVEL`` apply to all.
"""
from __future__ import annotations

import logging
import threading

from booktech import config as app_config

ROOT_NAME = "booktech"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_LOCK = threading.Lock()
_configured = False


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(ROOT_NAME)
    with _LOCK:
        if not _configured:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
            root.propagate = False
            _configured = True
        root.setLevel(getattr(logging, app_config.log_level_name(), logging.INFO))
    return root


def get_logger(name: str = ROOT_NAME) -> logging.Logger:
    root = _configure_root()
    if name == ROOT_NAME:
        return root
    if not name.startswith(ROOT_NAME + "."):
        name = f"{ROOT_NAME}.{name}"
    return logging.getLogger(name)


__all__ = ["get_logger", "ROOT_NAME"]
