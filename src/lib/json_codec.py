"""JSON codec for settings documents.

Converts between the on-disk text and a plain tree of dict/list/str/number/
bool/None. Reads never return partial results; writes truncate the target
first, so a failed write can leave a truncated file behind.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Tuple

from src.core.errors import (
    ConfigAccessError,
    ConfigFormatError,
    ConfigNotFoundError,
    ConfigWriteError,
    SettingsError,
)

_logger = logging.getLogger(__name__)
INDENT = 4


def read_document(path: Path | str) -> Any:
    p = Path(path)
    if not p.exists():
        raise ConfigNotFoundError(f"Config file does not exist: {p}", path=p)

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigAccessError(f"Could not read config file: {p}: {exc}", path=p) from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigFormatError(f"Failed to parse config file: {p}: {exc}", path=p) from exc


def try_read_document(path: Path | str) -> Tuple[bool, Any]:
    """Best-effort read: ``(True, document)`` or ``(False, None)``."""
    try:
        return True, read_document(path)
    except SettingsError as exc:
        _logger.debug("Skipping unreadable document", extra={"path": str(path), "reason": str(exc)})
        return False, None


def write_document(path: Path | str, document: Any) -> None:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(document, indent=INDENT, ensure_ascii=False)
        with p.open("w", encoding="utf-8") as handle:
            handle.write(serialized)
    except (OSError, TypeError, ValueError) as exc:
        raise ConfigWriteError(f"Could not write settings to: {p}: {exc}", path=p) from exc


__all__ = ["read_document", "try_read_document", "write_document", "INDENT"]
