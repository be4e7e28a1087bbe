"""Centralized logging bootstrap for the srepd runtime.

// [LAW:single-enforcer] Logger handler wiring is enforced in this module only.
// [LAW:one-source-of-truth] Runtime log path/level are derived here and returned to callers.

The interactive console owns the terminal, so the stderr handler is only
attached for non-interactive commands (``console=True``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

import srepd.settings


@dataclass(frozen=True)
class LoggingRuntime:
    """Resolved runtime logging configuration."""

    level_name: str
    level: int
    file_path: str


class LoggingSetupError(Exception):
    """The log destination cannot be resolved or opened."""


_RUNTIME: LoggingRuntime | None = None


def _parse_level(raw: str) -> tuple[str, int]:
    normalized = str(raw or "INFO").strip().upper()
    level = getattr(logging, normalized, logging.INFO)
    level_name = logging.getLevelName(level)
    return str(level_name), int(level)


def _default_log_path() -> str:
    if os.path.expanduser("~") == "~" and "XDG_CONFIG_HOME" not in os.environ:
        raise LoggingSetupError("cannot resolve home directory for the log file")
    return str(srepd.settings.get_config_dir() / "debug.log")


def _make_stream_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    return handler


def _make_file_handler(level: int, file_path: str) -> logging.Handler:
    try:
        handler = RotatingFileHandler(
            file_path,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as e:
        raise LoggingSetupError(f"cannot open log file {file_path}: {e}") from e
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    return handler


def configure(debug: bool = False, console: bool = False) -> LoggingRuntime:
    """Configure the srepd logger hierarchy with a rotating file handler.

    Idempotent: repeated calls return the originally configured runtime.
    Raises LoggingSetupError when the log destination is unusable.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    raw_level = "DEBUG" if debug else os.environ.get("SREPD_LOG_LEVEL", "INFO")
    level_name, level = _parse_level(raw_level)
    file_path = os.environ.get("SREPD_LOG_FILE") or _default_log_path()
    try:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LoggingSetupError(f"cannot create log directory for {file_path}: {e}") from e

    # [LAW:single-enforcer] All srepd module loggers propagate to this one logger.
    logger = logging.getLogger("srepd")
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()
    logger.addHandler(_make_file_handler(level, file_path))
    if console:
        logger.addHandler(_make_stream_handler(max(level, logging.WARNING)))

    # Keep third-party logging quiet unless it is warning+.
    root = logging.getLogger()
    if root.level > logging.WARNING:
        root.setLevel(logging.WARNING)

    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level, file_path=file_path)
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    """Return configured logging runtime, if configure() has run."""
    return _RUNTIME


def reset() -> None:
    """Drop the configured runtime and handlers (tests only)."""
    global _RUNTIME
    logger = logging.getLogger("srepd")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _RUNTIME = None
