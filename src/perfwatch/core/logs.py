"""Diagnostic logging helpers.

Collectors are diagnostic infrastructure: a failure inside one of them is
logged here and never propagated to the caller that fed it telemetry.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

logger = logging.getLogger("perfwatch")

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a basic console format once for the perfwatch loggers.

    Args:
        level: Log level name (e.g. "INFO", "WARNING").
    """
    global _configured
    logger.setLevel(level.upper())
    if _configured:
        return
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    _configured = True


def log_exception(message: str, **fields: object) -> None:
    """Log the exception currently being handled, with structured fields."""
    logger.exception(message, extra=fields)


@contextmanager
def contained(message: str, **fields: object) -> Generator[None]:
    """Catch and log any exception raised inside the block.

    Args:
        message: Log message describing what failed.
        **fields: Extra structured fields attached to the record.
    """
    try:
        yield
    except Exception:
        log_exception(message, **fields)
