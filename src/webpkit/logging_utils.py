"""Logging helpers for webpkit."""

from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable

from webpkit import constants

_LOGGER_NAME = "webpkit"
_HANDLER_TAG = "webpkit_handler"

_FORMATS = {
    "file": ("%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s", None),
    "console": ("%(levelname)s: %(message)s", None),
    "sink": ("%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"),
}


class SinkHandler(logging.Handler):
    """Pass formatted records to a callable, e.g. a progress display."""

    def __init__(self, sink: Callable[[str], None]) -> None:
        super().__init__()
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink(self.format(record))
        except Exception:
            self.handleError(record)


def _tagged(logger: logging.Logger, tag: str) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, _HANDLER_TAG, None) == tag]


def _remove_tagged(logger: logging.Logger, tag: str) -> None:
    for handler in _tagged(logger, tag):
        logger.removeHandler(handler)
        handler.close()


def _install(logger: logging.Logger, tag: str, handler: logging.Handler, level: int) -> None:
    fmt, datefmt = _FORMATS[tag]
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    handler.setLevel(level)
    setattr(handler, _HANDLER_TAG, tag)
    logger.addHandler(handler)


def _log_level() -> int:
    level_name = os.environ.get("WEBPKIT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _log_path() -> Path:
    configured = os.environ.get("WEBPKIT_LOG_PATH")
    if configured:
        return Path(configured).expanduser()
    return Path(tempfile.gettempdir()) / constants.LOG_FILE_NAME


def setup_logging(
    sink: Callable[[str], None] | None = None,
    enable_console: bool | None = None,
    level: int | None = None,
) -> Path:
    """Configure the ``webpkit`` logger and its handlers.

    Handlers are installed on the root logger and tagged, so calling this
    again never duplicates them. A new ``sink`` replaces the previous one;
    passing none removes it.

    Args:
        sink: Optional callable receiving formatted log lines.
        enable_console: Log to stderr. Defaults to True when no sink is given.
        level: Logging level (defaults to WEBPKIT_LOG_LEVEL env var or INFO).

    Returns:
        Path to the log file.
    """
    log_level = level if level is not None else _log_level()

    package_logger = logging.getLogger(_LOGGER_NAME)
    package_logger.setLevel(log_level)
    package_logger.propagate = True

    # Third-party loggers stay at WARNING
    root_logger = logging.getLogger()
    if root_logger.level == logging.NOTSET or root_logger.level > logging.WARNING:
        root_logger.setLevel(logging.WARNING)

    log_path = _log_path()
    if not _tagged(root_logger, "file"):
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path,
            maxBytes=constants.LOG_FILE_MAX_BYTES,
            backupCount=constants.LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        _install(root_logger, "file", handler, min(log_level, logging.INFO))
        package_logger.info("Logging to %s", log_path)

    if enable_console is None:
        enable_console = sink is None

    if not enable_console:
        _remove_tagged(root_logger, "console")
    elif not _tagged(root_logger, "console"):
        _install(root_logger, "console", logging.StreamHandler(), log_level)

    _remove_tagged(root_logger, "sink")
    if sink is not None:
        _install(root_logger, "sink", SinkHandler(sink), log_level)

    return log_path
