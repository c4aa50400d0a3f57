"""
Logging configuration for shopsmart.

One stderr handler on the ``shopsmart`` logger; noisy client libraries are
turned down.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> logging.Handler:
    """Install (once) a stderr handler on the shopsmart logger and return it."""
    logger = logging.getLogger("shopsmart")
    logger.setLevel(level.upper())

    for h in logger.handlers:
        if getattr(h, "_shopsmart", False):
            return h

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    handler._shopsmart = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    # Configure library logging to be less verbose
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return handler
