from __future__ import annotations

import logging

from src.infrastructure.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    level = level or get_settings().log_level
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    # basicConfig is a no-op once root has handlers
    logging.getLogger("src").setLevel(getattr(logging, level, logging.INFO))
