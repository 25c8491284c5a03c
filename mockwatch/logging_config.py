"""Logging setup for the watcher process.

Attaches a stderr handler and an optional rotating file handler to the root
logger. Handlers installed here are tagged so reconfiguration replaces only
our own handlers and leaves library or test handlers alone.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

_HANDLER_TAG_ATTR = "_mockwatch_handler"
_CONFIGURED_FLAG_ATTR = "_mockwatch_configured"


@dataclass(frozen=True)
class LoggingConfig:
    """Immutable logging setup request."""

    level: str = "INFO"
    console: bool = True
    log_file: Path | None = None
    max_bytes: int = 2 * 1024 * 1024
    backup_count: int = 3
    console_fmt: str = "%(asctime)s %(levelname)s %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt: str = "%H:%M:%S"


def parse_level(level: str) -> int:
    """Map a level name to its numeric value, defaulting to ``INFO``."""
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _tag_handler(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG_ATTR, True)
    return handler


def _remove_our_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG_ATTR, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """Configure the root logger once; pass ``force=True`` to reconfigure.

    A log file that cannot be opened is reported on stderr and skipped.
    """
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG_ATTR, False) and not force:
        return root

    level = parse_level(cfg.level)
    root.setLevel(level)
    _remove_our_handlers(root)

    if cfg.console:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(cfg.console_fmt, datefmt=cfg.datefmt))
        root.addHandler(_tag_handler(console))

    if cfg.log_file is not None:
        try:
            cfg.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                cfg.log_file,
                maxBytes=cfg.max_bytes,
                backupCount=cfg.backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            sys.stderr.write(f"mockwatch: cannot open log file {cfg.log_file}: {exc}\n")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(cfg.file_fmt))
            root.addHandler(_tag_handler(file_handler))

    setattr(root, _CONFIGURED_FLAG_ATTR, True)
    return root


__all__ = ["LoggingConfig", "parse_level", "configure_logging"]
