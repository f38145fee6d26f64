from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from src.lib.redaction import MASK, SECRET_KEYS, redact

JSON_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
REDACTED_VALUE = MASK
STANDARD_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
}


def _is_secret(key: str) -> bool:
    return key.lower() in SECRET_KEYS


class SensitiveDataFilter(logging.Filter):
    """Redact password-like attributes and embedded URI credentials from log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for key, value in list(record.__dict__.items()):
            if key in STANDARD_RECORD_ATTRS:
                continue
            if _is_secret(key):
                setattr(record, key, REDACTED_VALUE)
            elif isinstance(value, str):
                setattr(record, key, redact(value))
        if isinstance(record.args, dict):
            record.args = {
                key: (REDACTED_VALUE if _is_secret(str(key)) else value)
                for key, value in record.args.items()
            }
        return True


class JsonFormatter(logging.Formatter):
    """Emit log records as compact JSON for deterministic parsing."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = self._extract_extras(record)
        if extras:
            payload["context"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=True)

    def _extract_extras(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in STANDARD_RECORD_ATTRS or key.startswith("_"):
                continue
            if _is_secret(key):
                extras[key] = REDACTED_VALUE
            else:
                extras[key] = self._stringify(value)
        return extras

    @staticmethod
    def _stringify(value: Any) -> Any:
        if isinstance(value, (str, int, float, bool)) or value is None:
            return value
        return str(value)


def configure_logging(
    panel_handler_factory: Optional[Callable[[], logging.Handler]] = None,
    *,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure root logger with structured output, an optional log file and log panel bridge."""

    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(f, SensitiveDataFilter) for f in root.filters):
        root.addFilter(SensitiveDataFilter())

    if not _has_stream_handler(root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(JsonFormatter(JSON_LOG_FORMAT))
        stream_handler.addFilter(SensitiveDataFilter())
        root.addHandler(stream_handler)

    if log_file is not None and not _has_file_handler(root.handlers, log_file):
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            logging.getLogger(__name__).warning("Failed to open log file %s: %s", log_file, exc)
        else:
            file_handler.setFormatter(JsonFormatter(JSON_LOG_FORMAT))
            file_handler.addFilter(SensitiveDataFilter())
            root.addHandler(file_handler)

    if panel_handler_factory:
        try:
            panel_handler = panel_handler_factory()
        except Exception as exc:  # pragma: no cover
            logging.getLogger(__name__).warning(
                "Failed to initialize log panel handler: %s", exc, exc_info=True
            )
        else:
            panel_handler.setFormatter(JsonFormatter(JSON_LOG_FORMAT))
            panel_handler.addFilter(SensitiveDataFilter())
            root.addHandler(panel_handler)

    return root


def apply_debug_mode(enabled: bool) -> None:
    """Switch the root logger between DEBUG and INFO following the ``debugMode`` setting."""
    logging.getLogger().setLevel(logging.DEBUG if enabled else logging.INFO)


def _has_stream_handler(handlers: list[logging.Handler]) -> bool:
    return any(
        isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)
        for handler in handlers
    )


def _has_file_handler(handlers: list[logging.Handler], log_file: Path) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target for handler in handlers
    )


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "apply_debug_mode",
    "SensitiveDataFilter",
    "REDACTED_VALUE",
]
