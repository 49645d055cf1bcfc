"""Logging setup for the Bondly API."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a single stdout handler."""
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if _configured:
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # SQL echo and outbound request logs are too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
