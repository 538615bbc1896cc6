# === FILE: web_freezer/logger.py ===
"""Логгер WebFreezer: консоль и, при необходимости, ротируемый файл.

Модули берут дочерний логгер через ``get_logger("crawler")``; CLI
перенастраивает уровень и файл через :func:`init_logging`.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "WebFreezer"
_LOG_FILE_BYTES: Final[int] = 5 * 1024 * 1024

_LevelT = Union[int, str]


def _console_handler(fmt: str) -> logging.StreamHandler:
    # stderr: stdout занят выводом команд (JSON из `config`)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _rotating_handler(file: Union[Path, str], fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(str(file), maxBytes=_LOG_FILE_BYTES, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Настраивает корневой логгер проекта; *log_file=None* значит только консоль."""
    root = logging.getLogger(_LOGGER_NAME)
    root.setLevel(level)
    if replace_handlers:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    root.addHandler(_console_handler(log_format))
    if log_file is not None:
        root.addHandler(_rotating_handler(log_file, log_format))

    root.propagate = False
    return root


def init_logging(
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(name: str | None = None) -> logging.Logger:
    """``WebFreezer`` или его потомок ``WebFreezer.<name>``."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger"]
