"""Logging configuration for CoinLens."""

import logging
import sys
from typing import Optional

_ROOT = "coinlens"


def setup_logger(name: str = _ROOT, level: Optional[str] = None) -> logging.Logger:
    """Return a ``coinlens.<name>`` logger.

    The stderr handler (``time | name | level | message``) lives on the
    ``coinlens`` parent; module loggers propagate to it and inherit its
    level unless ``level`` is given.  ``setup_logger("coinlens", level)``
    therefore sets the level for the whole package.
    """
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(name)-28s | %(levelname)-7s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    logger = root if name == _ROOT else logging.getLogger(f"{_ROOT}.{name}")
    if level is not None:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
