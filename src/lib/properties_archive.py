"""Read a single value out of a zip-packaged, tag-delimited properties file.

Sibling 3T products ship their settings as a zip archive holding one XML-ish
properties entry. The value following a marker text is found by walking the
token stream: once a text token equals the marker, three tokens are skipped
and the text of the fourth is returned.

Every failure (missing archive, corrupt zip, missing entry, unreadable
stream) yields ``""``.
"""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Iterable, Iterator

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QXmlStreamReader

_logger = logging.getLogger(__name__)
ANONYMOUS_ID_MARKER = "AnonymousID"
TOKENS_SKIPPED = 3


def read_archive_entry(archive_path: Path, entry_name: str) -> bytes:
    """Return the raw bytes of ``entry_name`` or ``b""`` when unavailable."""
    if not archive_path.is_file():
        return b""
    try:
        with zipfile.ZipFile(archive_path) as archive:
            return archive.read(entry_name)
    except (zipfile.BadZipFile, KeyError, OSError) as exc:
        _logger.debug(
            "Archive entry not readable",
            extra={"archive": str(archive_path), "entry": entry_name, "reason": str(exc)},
        )
        return b""


def iter_text_tokens(data: bytes) -> Iterator[str]:
    """Yield the text of every token in the stream, empty for non-text tokens."""
    buffer = QBuffer()
    buffer.setData(QByteArray(data))
    buffer.open(QIODevice.OpenModeFlag.ReadOnly)
    try:
        reader = QXmlStreamReader(buffer)
        while not reader.atEnd():
            reader.readNext()
            yield str(reader.text())
    finally:
        buffer.close()


def value_after_marker(tokens: Iterable[str], marker: str, skip: int = TOKENS_SKIPPED) -> str:
    it = iter(tokens)
    for token in it:
        if token != marker:
            continue
        for _ in range(skip):
            next(it, None)
        return next(it, "")
    return ""


def extract_anonymous_id_from_archive(archive_path: Path | str, entry_name: str) -> str:
    data = read_archive_entry(Path(archive_path), entry_name)
    if not data:
        return ""
    try:
        return value_after_marker(iter_text_tokens(data), ANONYMOUS_ID_MARKER).strip()
    except (TypeError, ValueError, RuntimeError) as exc:
        _logger.debug(
            "Archive entry not parseable",
            extra={"archive": str(archive_path), "entry": entry_name, "reason": str(exc)},
        )
        return ""


__all__ = [
    "ANONYMOUS_ID_MARKER",
    "read_archive_entry",
    "iter_text_tokens",
    "value_after_marker",
    "extract_anonymous_id_from_archive",
]
