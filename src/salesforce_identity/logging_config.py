"""Logging configuration for salesforce-identity.

Library modules obtain loggers through :func:`get_logger` and never configure
handlers themselves. Applications (and the CLI) call :func:`setup_logging`
once at startup.
"""

from __future__ import annotations

import logging
import os
import re

PACKAGE_LOGGER = "salesforce_identity"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SecretRedactionFilter(logging.Filter):
    """Mask bearer tokens and OAuth secrets in log messages."""

    PATTERNS = [
        (re.compile(r"(Bearer\s+)\S+", re.IGNORECASE), r"\1***"),
        (
            re.compile(
                r"((?:client_secret|client_assertion|assertion|refresh_token|code)=)[^&\s]+",
                re.IGNORECASE,
            ),
            r"\1***",
        ),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in self.PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package logger.

    Args:
        name: Dotted module name relative to the package (e.g. "client.base")
    """
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def setup_logging(level: str | None = None) -> None:
    """Configure the package logger.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL environment
            variable, then INFO.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level_name)

    # Avoid stacking handlers when called more than once
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SecretRedactionFilter())
    logger.addHandler(handler)
    logger.propagate = False
