"""Logging helpers for the expense tracking API.

Every logger gets one console handler. When JSON logs are enabled (by
argument or ``EXPENSE_API_JSON_LOGS``) the request log is also appended, one
JSON object per line, to the configured log file.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, Optional

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
LOG_PATH: Final[Path] = Path("artifacts") / "logs" / "expense_api.log"
JSON_ENV_FLAG: Final[str] = "EXPENSE_API_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "EXPENSE_API_LOG_LEVEL"
REQUEST_FIELDS: Final[tuple[str, ...]] = ("method", "path", "status_code", "duration_ms")

_CONSOLE_MARKER = "_expense_api_console"
_JSON_MARKER = "_expense_api_json"


class JsonRequestFormatter(logging.Formatter):
    """Render a record, plus the request fields the middleware attaches, as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
        }
        for field in REQUEST_FIELDS:
            payload[field] = getattr(record, field, None)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | int | None) -> int:
    """Pick the log level from the argument, then the environment, then the default."""

    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        candidate = level.strip().upper()
    else:
        candidate = os.environ.get(LEVEL_ENV_FLAG, DEFAULT_LEVEL).strip().upper()
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _json_requested(explicit: bool) -> bool:
    if explicit:
        return True
    return os.environ.get(JSON_ENV_FLAG, "").strip().lower() in {"1", "true", "yes", "on"}


def _marked_handler(logger: logging.Logger, marker: str) -> Optional[logging.Handler]:
    return next((handler for handler in logger.handlers if getattr(handler, marker, False)), None)


def _attach(logger: logging.Logger, handler: logging.Handler, marker: str, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    setattr(handler, marker, True)
    logger.addHandler(handler)


def _configure_json_file(logger: logging.Logger, log_path: Path, level: int) -> None:
    target = log_path.resolve()
    current = _marked_handler(logger, _JSON_MARKER)
    if isinstance(current, logging.FileHandler) and Path(current.baseFilename) == target:
        current.setLevel(level)
        return
    if current is not None:
        # The log file moved; stop writing to the old one.
        logger.removeHandler(current)
        current.close()
    target.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(target, encoding="utf-8")
    file_handler.setLevel(level)
    _attach(logger, file_handler, _JSON_MARKER, JsonRequestFormatter())


def setup_logger(
    name: str,
    json_format: bool = False,
    level: str | int | None = None,
    log_path: str | Path | None = None,
) -> logging.Logger:
    """Configure and return a logger; repeated calls never duplicate handlers."""

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Keep propagating so capture handlers such as pytest's caplog still see records.
    logger.propagate = True

    console = _marked_handler(logger, _CONSOLE_MARKER)
    if console is None:
        console = logging.StreamHandler()
        _attach(logger, console, _CONSOLE_MARKER, logging.Formatter(CONSOLE_FORMAT))
    console.setLevel(resolved_level)

    if _json_requested(json_format):
        _configure_json_file(logger, Path(log_path) if log_path else LOG_PATH, resolved_level)
    return logger


__all__ = ["JsonRequestFormatter", "setup_logger", "LOG_PATH"]
