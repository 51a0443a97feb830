"""Logging helpers for dns-promoter."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty below WARNING.
QUIET_LOGGERS = ("botocore", "boto3", "urllib3")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure process-wide logging and return the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)

    Returns:
        The `dns_promoter` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=numeric_level, handlers=[stream_handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("dns_promoter")
