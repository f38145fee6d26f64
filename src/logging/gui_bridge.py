"""Bridge between the settings loggers and the client's log panel.

Settings messages carry their subject in ``extra`` (``path``, ``uuid``,
``added`` ...). The panel shows those as a compact ``key=value`` suffix so a
user can tell which config file a warning is about without opening the JSON
log. Records flagged ``notify=False`` (startup chatter) never reach the panel.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping

from src.lib.redaction import MASK, SECRET_KEYS, redact
from src.logging.config import STANDARD_RECORD_ATTRS

SEVERITY_MAP: Mapping[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}
_PANEL_SKIPPED_KEYS = {"notify"}


def _panel_context(record: logging.LogRecord) -> Dict[str, str]:
    context: Dict[str, str] = {}
    for key, value in record.__dict__.items():
        if key in STANDARD_RECORD_ATTRS or key in _PANEL_SKIPPED_KEYS or key.startswith("_"):
            continue
        context[key] = MASK if key.lower() in SECRET_KEYS else redact(str(value))
    return context


@dataclass(slots=True)
class PanelLogRecord:
    message: str
    severity: str
    timestamp: str
    source: str
    context: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "PanelLogRecord":
        return cls(
            message=redact(record.getMessage()),
            severity=SEVERITY_MAP.get(record.levelno, "info"),
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            source=record.name,
            context=_panel_context(record),
        )

    def display_text(self) -> str:
        if not self.context:
            return self.message
        details = " ".join(f"{key}={value}" for key, value in sorted(self.context.items()))
        return f"{self.message} ({details})"


class LogPanelHandler(logging.Handler):
    """Hand panel-worthy records to ``emitter`` as :class:`PanelLogRecord`."""

    def __init__(self, emitter: Callable[[PanelLogRecord], Any], level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._emitter = emitter

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        if getattr(record, "notify", True) is False:
            return
        try:
            self._emitter(PanelLogRecord.from_record(record))
        except Exception:  # pragma: no cover
            self.handleError(record)


def build_panel_handler(emitter: Callable[[PanelLogRecord], Any]) -> LogPanelHandler:
    return LogPanelHandler(emitter, level=logging.INFO)


__all__ = ["PanelLogRecord", "LogPanelHandler", "build_panel_handler", "SEVERITY_MAP"]
