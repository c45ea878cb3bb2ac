"""Logging configuration for the application.

Gemini authenticates with a ``key`` query parameter, so every URL that
reaches a log line (ours or httpx's request lines) carries the API key.
``ApiKeyRedactingFilter`` sits on each handler and masks it before the
record is formatted.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOG_FILE_NAME = "paperchat.log"
FILE_LEVEL_ENV = "PAPERCHAT_LOG_FILE_LEVEL"
CONSOLE_LEVEL_ENV = "PAPERCHAT_LOG_CONSOLE_LEVEL"

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")
REDACTED = "***"


def redact_api_key(text: str) -> str:
    """Mask the value of every ``key=`` query parameter in ``text``."""
    return _KEY_PARAM.sub(lambda m: m.group(1) + REDACTED, text)


class ApiKeyRedactingFilter(logging.Filter):
    """Rewrites records so no ``key=`` query value is written out."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_api_key(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _level_from(value: Optional[str], default: int) -> int:
    if not value:
        return default
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def _install_excepthook() -> None:
    if getattr(_install_excepthook, "_installed", False):
        return

    def handle_exception(exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        logging.getLogger("uncaught").critical(
            "Unhandled exception", exc_info=(exc_type, exc, tb)
        )
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = handle_exception
    _install_excepthook._installed = True


def configure_logging(
    log_dir: Optional[Path] = None,
    file_level: Optional[str] = None,
    console_level: Optional[str] = None,
) -> Optional[Path]:
    """Install the file and console handlers on the root logger.

    Levels default to INFO and can be overridden by argument or by the
    ``PAPERCHAT_LOG_FILE_LEVEL`` / ``PAPERCHAT_LOG_CONSOLE_LEVEL``
    environment variables.

    Returns:
        Path of the rotating log file, or None when it could not be opened
    """
    log_dir = log_dir or (Path.home() / ".paperchat" / "logs")
    log_file: Optional[Path] = log_dir / LOG_FILE_NAME

    file_level_value = _level_from(file_level or os.getenv(FILE_LEVEL_ENV), logging.INFO)
    console_level_value = _level_from(
        console_level or os.getenv(CONSOLE_LEVEL_ENV), logging.INFO
    )

    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    redactor = ApiKeyRedactingFilter()

    handlers: list[logging.Handler] = []
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=2 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level_value)
        handlers.append(file_handler)
    except OSError as e:
        print(f"File logging disabled, cannot open {log_file}: {e}", file=sys.stderr)
        log_file = None

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level_value)
    handlers.append(console_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)

    logging.basicConfig(
        level=min(file_level_value, console_level_value),
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)
    _install_excepthook()

    logging.getLogger(__name__).debug("Logging initialized at %s", log_file)
    return log_file
