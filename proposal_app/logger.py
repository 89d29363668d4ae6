# proposal_app/logger.py
from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-level logger, installing the default handler once."""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        level = (os.getenv("LOG_LEVEL") or "INFO").upper()
        logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    return logger
