"""Logging utilities for the relay.

``get_logger`` hands out named standard library loggers. Handlers and format
are installed once by the entry point through ``configure_logging`` so that
modules never configure logging themselves.

Example:
    Typical usage in a module::

        from http_smtp_relay.logger import get_logger

        logger = get_logger("SmtpSession")
        logger.info("Delivered")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "HttpSmtpRelay") -> logging.Logger:
    """Return the :class:`logging.Logger` bound to ``name``."""
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler with the relay's log format.

    Unknown level names fall back to ``INFO``. ``force=True`` replaces any
    handler a previous call (or uvicorn) installed, avoiding duplicate lines.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,
    )
