"""Logging configuration shared by CLI commands."""

from __future__ import annotations

import logging
import sys

from traffic_ledger.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "traffic_ledger"

_HANDLER_MARKER = "_traffic_ledger_handler"


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach file and console handlers to the package logger.

    The file handler records everything at INFO (DEBUG with ``settings.debug``),
    the console handler only INFO and above. Records logged with
    ``extra={"file_only": True}`` skip the console. Calling this again replaces
    the handlers installed by a previous call.
    """

    reset_logging()
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    file_level = logging.DEBUG if settings.debug else logging.INFO

    file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_MARKER, True)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_skip_file_only)
    setattr(console_handler, _HANDLER_MARKER, True)

    package_logger.addHandler(file_handler)
    package_logger.addHandler(console_handler)
    package_logger.setLevel(file_level)
    return package_logger


def _skip_file_only(record: logging.LogRecord) -> bool:
    return not getattr(record, "file_only", False)


def reset_logging() -> None:
    """Detach and close handlers installed by :func:`configure_logging`."""

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(logging.NOTSET)
