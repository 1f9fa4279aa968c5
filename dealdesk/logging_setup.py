"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys

from .config import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if getattr(root, "_dealdesk_configured", False):
        return

    level_name = (level or settings.log_level or "INFO").upper()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root._dealdesk_configured = True  # type: ignore[attr-defined]
