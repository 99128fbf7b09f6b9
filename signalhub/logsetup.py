"""Logging to the console and to a rotating file, with named loggers."""

from __future__ import annotations

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

OFF = logging.CRITICAL + 10
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 10

_PREFIX = "signalhub"
_DEFAULT_NAME = "default"
_FALLBACK_NAME = "fallback"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def log_level_from_name(name) -> int:
    """Map a configured level name to a logging level; unknown names mean off."""
    return _LEVELS.get(name, OFF)


class _LineFormatter(logging.Formatter):
    _LEVEL_NAMES = {
        logging.DEBUG: "debug",
        logging.INFO: "info",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "critical",
    }

    def __init__(self) -> None:
        super().__init__(
            "[%(asctime)s.%(msecs)03d] [%(levelname)s]\t[%(name)s]\t- %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        view = logging.makeLogRecord(record.__dict__)
        view.levelname = self._LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        prefix = _PREFIX + "."
        if view.name.startswith(prefix):
            view.name = view.name[len(prefix):]
        return super().format(view)


class _State:
    def __init__(self) -> None:
        self.default: logging.Logger | None = None
        self.handlers: list[logging.Handler] = []
        self.level = logging.INFO
        self.configured: set[str] = set()


_state = _State()
_lock = threading.RLock()


def _default_log_file() -> Path:
    return Path(sys.argv[0] or ".").resolve().parent / "logs" / "app.log"


def _configure(logger: logging.Logger, handlers, level: int) -> logging.Logger:
    logger.handlers[:] = list(handlers)
    logger.setLevel(level)
    logger.propagate = False
    _state.configured.add(logger.name)
    return logger


def setup_logging(log_file=None, level_name="info") -> logging.Logger:
    """Set up the default logger once and return it.

    Later calls return the logger set up by the first one. If the log file
    cannot be opened, a console-only fallback logger is used instead.
    """
    with _lock:
        if _state.default is not None:
            return _state.default

        level = log_level_from_name(level_name)
        path = Path(log_file) if log_file else _default_log_file()
        formatter = _LineFormatter()

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(formatter)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
            )
        except OSError as exc:
            console.setLevel(logging.INFO)
            _state.handlers = [console]
            _state.level = level
            fallback = _configure(
                logging.getLogger(f"{_PREFIX}.{_FALLBACK_NAME}"), [console], logging.INFO
            )
            _state.default = fallback
            fallback.error("Log initialization failed: %s", exc)
            return fallback

        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)

        _state.handlers = [console, file_handler]
        _state.level = level
        logger = _configure(
            logging.getLogger(f"{_PREFIX}.{_DEFAULT_NAME}"), _state.handlers, level
        )
        _state.default = logger
        logger.info("Logger initialized, log file: %s", path)
        return logger


def get_logger(name="default") -> logging.Logger:
    """Return the logger for ``name``, sharing the default logger's outputs.

    A ``::<lambda`` suffix is cut off; an empty name or ``default`` gives the
    default logger. Logging is set up with defaults if it has not been yet.
    """
    with _lock:
        if _state.default is None:
            setup_logging()
        name = name.split("::<lambda", 1)[0]
        if name in ("", _DEFAULT_NAME):
            return _state.default
        logger = logging.getLogger(f"{_PREFIX}.{name}")
        if logger.name not in _state.configured:
            _configure(logger, _state.handlers, _state.level)
        return logger


def _reset() -> None:
    """Close all outputs and forget the set-up state."""
    with _lock:
        for handler in _state.handlers:
            handler.close()
        for logger_name in _state.configured:
            logging.getLogger(logger_name).handlers.clear()
        _state.default = None
        _state.handlers = []
        _state.level = logging.INFO
        _state.configured = set()