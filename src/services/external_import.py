from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from src.core.errors import ConfigNotFoundError, ProfileFormatError, SettingsError
from src.lib.json_codec import read_document
from src.lib.redaction import redact_profile
from src.lib.secret_cipher import PasswordCipher
from src.services.connection_settings import ConnectionSettings

EXTERNAL_PREFIX = "[External] "

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportReport:
    """Outcome of one external import; ``ok`` is False when the file was unusable."""

    path: Path
    ok: bool = False
    candidates: int = 0
    added: int = 0
    skipped_empty: int = 0
    skipped_duplicate: int = 0
    failed: int = 0


def extract_candidates(document: Any) -> List[Any]:
    """Pick the profile candidates out of an external document.

    First match wins: ``connections``, then ``connectionsList``, then every
    object-valued top-level entry, then the whole document as one profile.
    A bare top-level array is taken as the candidate list.

    A lone profile with object-valued members (``ssh``, ``ssl``) is therefore
    read as a map of profiles keyed by those members; such files must wrap the
    profile in ``connections``.
    """
    if isinstance(document, list):
        return list(document)
    if not isinstance(document, dict):
        return []

    for key in ("connections", "connectionsList"):
        if key in document:
            value = document[key]
            return list(value) if isinstance(value, list) else []

    candidates = [value for value in document.values() if isinstance(value, dict)]
    if not candidates:
        candidates = [document]
    return candidates


def _same_server(a: ConnectionSettings, b: ConnectionSettings) -> bool:
    return (
        a.server_host == b.server_host
        and a.server_port == b.server_port
        and a.default_database == b.default_database
    )


def is_duplicate(candidate: ConnectionSettings, existing: ConnectionSettings) -> bool:
    if not _same_server(candidate, existing):
        return False

    cred = candidate.primary_credential()
    existing_cred = existing.primary_credential()
    if cred is None and existing_cred is None:
        return True
    if cred is None or existing_cred is None:
        return False
    return cred.database_name == existing_cred.database_name and cred.user_name == existing_cred.user_name


def import_connections_from_file(
    path: Path | str,
    connections: List[ConnectionSettings],
    *,
    cipher: Optional[PasswordCipher] = None,
) -> ImportReport:
    """Append the non-duplicate profiles found in ``path`` to ``connections``.

    The caller owns persistence; nothing is written here.
    """
    source = Path(path)
    report = ImportReport(path=source)

    try:
        document = read_document(source)
    except ConfigNotFoundError:
        _logger.error("Config file does not exist", extra={"path": str(source)})
        return report
    except SettingsError as exc:
        _logger.error("Failed to read config file", extra={"path": str(source), "reason": str(exc)})
        return report

    report.ok = True
    candidates = extract_candidates(document)
    report.candidates = len(candidates)
    if not candidates:
        _logger.warning("No connections found in config file", extra={"path": str(source)})
        return report

    for raw in candidates:
        if not isinstance(raw, dict) or not raw:
            report.skipped_empty += 1
            continue

        try:
            conn = ConnectionSettings.from_dict(raw, cipher)
        except ProfileFormatError as exc:
            report.failed += 1
            _logger.error(
                "Failed to load connection from config file",
                extra={"path": str(source), "reason": str(exc), "profile": str(redact_profile(raw))},
            )
            continue

        conn.imported = True
        original_name = conn.connection_name
        if not original_name.startswith(EXTERNAL_PREFIX):
            conn.connection_name = EXTERNAL_PREFIX + original_name

        if any(is_duplicate(conn, existing) for existing in connections):
            report.skipped_duplicate += 1
            _logger.info("Skipped duplicate connection", extra={"connection": original_name})
            continue

        connections.append(conn)
        report.added += 1

    _logger.info(
        "Loaded connections from external file",
        extra={
            "path": str(source),
            "added": report.added,
            "duplicates": report.skipped_duplicate,
            "failed": report.failed,
        },
    )
    return report


__all__ = ["ImportReport", "EXTERNAL_PREFIX", "extract_candidates", "is_duplicate", "import_connections_from_file"]
