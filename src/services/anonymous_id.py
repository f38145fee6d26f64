from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from src.lib.json_codec import try_read_document
from src.lib.properties_archive import extract_anonymous_id_from_archive
from src.services.legacy_import import VERSION_BEFORE_ID, VERSION_UNTRUSTED_ID, LegacyLocation

SCAN_PATTERN = "robo*.json"

_logger = logging.getLogger(__name__)


def normalize_anonymous_id(value: Any) -> str:
    """Return the canonical brace-less form of a UUID string, or ``""``."""
    if not isinstance(value, str) or not value.strip():
        return ""
    try:
        parsed = uuid.UUID(value.strip())
    except ValueError:
        return ""
    if parsed.int == 0:
        return ""
    return str(parsed)


def anonymous_id_from_file(path: Path) -> str:
    ok, document = try_read_document(path)
    if not ok or not isinstance(document, dict):
        return ""
    return normalize_anonymous_id(document.get("anonymousID"))


class AnonymousIdResolver:
    """Finds the installation's anonymous id, creating one as a last resort.

    Sources in order: the document being loaded, sibling-product archives,
    legacy config files (newest first), then a recursive scan of the legacy
    config roots.
    """

    def __init__(
        self,
        archives: Sequence[Tuple[Path, str]],
        legacy_locations: Sequence[LegacyLocation],
        scan_roots: Sequence[Path],
    ) -> None:
        self.archives = list(archives)
        self.legacy_locations = list(legacy_locations)
        self.scan_roots = list(scan_roots)

    def resolve(self, document: Mapping[str, Any]) -> str:
        for source, finder in (
            ("document", lambda: normalize_anonymous_id(document.get("anonymousID"))),
            ("archive", self._from_archives),
            ("legacy", self._from_legacy_locations),
            ("scan", self._from_scan),
        ):
            found = finder()
            if found:
                _logger.debug("Anonymous id resolved", extra={"source": source})
                return found

        created = str(uuid.uuid4())
        _logger.info("Created new anonymous id", extra={"source": "generated"})
        return created

    def _from_archives(self) -> str:
        for archive, entry in self.archives:
            found = normalize_anonymous_id(extract_anonymous_id_from_archive(archive, entry))
            if found:
                return found
        return ""

    def _from_legacy_locations(self) -> str:
        for location in self.legacy_locations:
            if location.version == VERSION_UNTRUSTED_ID:
                continue
            if location.version == VERSION_BEFORE_ID:
                break
            found = anonymous_id_from_file(location.path)
            if found:
                return found
        return ""

    def _from_scan(self) -> str:
        for root in self.scan_roots:
            for candidate in _scan(root):
                found = anonymous_id_from_file(candidate)
                if found:
                    return found
        return ""


def _scan(root: Path) -> Iterable[Path]:
    if not root.is_dir():
        return []
    matches: List[Path] = [p for p in root.rglob(SCAN_PATTERN) if p.is_file()]
    return sorted(matches)


__all__ = ["AnonymousIdResolver", "normalize_anonymous_id", "anonymous_id_from_file", "SCAN_PATTERN"]
