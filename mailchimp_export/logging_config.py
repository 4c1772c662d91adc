"""Logging configuration for mailchimp-export.

Provides console logging with appropriate levels for client code
vs third-party HTTP libraries.
"""

import logging
import sys
from typing import Literal

from mailchimp_export.settings import get_settings

# Third-party loggers that log every request/connection at INFO or DEBUG
NOISY_LOGGERS = [
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
    "httpx",
    "asyncio",
]


def suppress_noisy_loggers() -> None:
    """Suppress noisy third-party loggers.

    Call this after importing libraries that configure their own logging.
    """
    for logger_name in NOISY_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.WARNING)
        logger.handlers.clear()


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
) -> None:
    """Configure client logging.

    Sets up:
    - mailchimp_export logs at the configured level
    - Third-party HTTP library logs suppressed to WARNING+
    - Clean console output on stderr

    Not called on import; applications that embed the client usually own
    logging themselves.

    Args:
        level: Override log level (defaults to settings.log_level)
    """
    log_level = level or get_settings().log_level

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level))
    formatter = logging.Formatter(
        "%(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("mailchimp_export").setLevel(getattr(logging, log_level))

    suppress_noisy_loggers()
