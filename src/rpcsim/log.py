"""Logging setup.

Environment variables:
- RPCSIM_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default WARNING)

All records go to standard error; standard output is reserved for results.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

_CONFIGURED = False


def configure(level: Optional[str] = None) -> None:
    """Install the root handler once; later calls only adjust the level."""

    global _CONFIGURED
    if level is None:
        level = os.getenv("RPCSIM_LOG_LEVEL", "WARNING")
    lvl = getattr(logging, level.upper(), logging.WARNING)

    if _CONFIGURED:
        logging.getLogger("rpcsim").setLevel(lvl)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("rpcsim")
    logger.addHandler(handler)
    logger.setLevel(lvl)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    if not _CONFIGURED:
        configure()
    return logging.getLogger(name)
