"""
inkscribe.logging - Centralized logging configuration.

Provides the package logger and a simple setup with optional verbose mode.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("inkscribe")


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the inkscribe namespace."""
    if name == "inkscribe" or name.startswith("inkscribe."):
        return logging.getLogger(name)
    return logger.getChild(name)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the inkscribe package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    logger.setLevel(level)
