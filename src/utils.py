"""
Utility functions for domain-agnostic operations.

This module consolidates utility functions used throughout the system:
- Logging setup: Apply configured level/format/file
- Decorators: Utility context managers (timer, etc.)

Apart from configure_logging, utilities have no dependencies on other project modules.
"""

import logging
import time
from contextlib import contextmanager
from typing import Generator

from common.constants import SystemConstants

logger = logging.getLogger(__name__)

# ==============================================================================
# Logging
# ==============================================================================


def configure_logging(settings=None) -> None:
    """
    Configure root logging from settings.

    Args:
        settings: Settings instance; the cached settings are used when omitted
    """
    if settings is None:
        from config import get_settings

        settings = get_settings()

    system = settings.system
    kwargs = {
        "level": getattr(logging, system.log_level),
        "format": SystemConstants.LOG_FORMAT,
    }
    if system.log_file:
        kwargs["filename"] = system.log_file

    logging.basicConfig(**kwargs)
    # PIL logs every chunk it parses at debug level
    logging.getLogger("PIL").setLevel(logging.INFO)
    logger.debug(f"Logging configured at {system.log_level}")


# ==============================================================================
# Decorators
# ==============================================================================


@contextmanager
def timer() -> Generator[dict, None, None]:
    """
    Context manager to measure execution time.

    Usage:
        with timer() as t:
            # ... code to time ...
            pass
        logger.debug(f"Took {t['ms']}ms")

    Yields:
        Dictionary with 'ms' key containing processing time in milliseconds
    """
    result = {"ms": 0.0}
    start_time = time.perf_counter()
    try:
        yield result
    finally:
        result["ms"] = (time.perf_counter() - start_time) * 1000.0
