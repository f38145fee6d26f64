from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from src.core.enums import (
    AutocompletionMode,
    SupportedTimes,
    UUIDEncoding,
    ViewMode,
    to_bool,
    to_int,
)
from src.core.errors import ConfigNotFoundError, ProfileFormatError, SettingsError
from src.lib import paths
from src.lib.json_codec import read_document, write_document
from src.lib.redaction import redact_profile
from src.lib.secret_cipher import PasswordCipher
from src.services.anonymous_id import AnonymousIdResolver
from src.services.connection_settings import ConnectionSettings
from src.services.external_import import ImportReport, import_connections_from_file
from src.services.legacy_import import LegacyLocation, LegacyMigrationChain, default_legacy_locations

SCHEMA_VERSION = "2.0"
DEFAULT_BATCH_SIZE = 50
DEFAULT_STYLE = "Native"
DEFAULT_TOOLBARS: Dict[str, bool] = {
    "connect": True,
    "open_save": True,
    "exec": True,
    "explorer": True,
    "logs": False,
}

_logger = logging.getLogger(__name__)


@dataclass
class SettingsDocument:
    """Global preferences persisted in the canonical config file.

    The profile list is owned by ``SettingsManager`` and serialized next to
    these fields under ``connections``.
    """

    version: str = SCHEMA_VERSION
    uuid_encoding: UUIDEncoding = UUIDEncoding.DEFAULT
    time_zone: SupportedTimes = SupportedTimes.UTC
    view_mode: ViewMode = ViewMode.TREE
    autocompletion_mode: AutocompletionMode = AutocompletionMode.ALL
    load_mongo_rc_js: bool = False
    auto_expand: bool = True
    auto_exec: bool = True
    minimize_to_tray: bool = False
    line_numbers: bool = False
    disable_connection_shortcuts: bool = False
    program_exited_normally: bool = True
    disable_https_features: bool = False
    debug_mode: bool = False
    accepted_eula_versions: Set[str] = field(default_factory=set)
    db_versions_connected: Set[str] = field(default_factory=set)
    batch_size: int = DEFAULT_BATCH_SIZE
    check_for_updates: bool = True
    current_style: str = DEFAULT_STYLE
    text_font_family: str = ""
    text_font_point_size: int = -1
    mongo_timeout_sec: int = 10
    shell_timeout_sec: int = 15
    imported: bool = False
    anonymous_id: str = ""
    toolbars: Dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_TOOLBARS))
    cache: Dict[str, Any] = field(default_factory=dict)

    def set_shell_timeout_sec(self, value: int) -> None:
        self.shell_timeout_sec = abs(int(value))

    def set_text_font_point_size(self, value: int) -> None:
        self.text_font_point_size = value if value > 0 else -1


def _string_set(value: Any) -> Set[str]:
    if not isinstance(value, list):
        return set()
    return {str(item) for item in value if item is not None}


def _toolbars(value: Any) -> Dict[str, bool]:
    toolbars = {str(k): to_bool(v) for k, v in value.items()} if isinstance(value, dict) else {}
    for name, visible in DEFAULT_TOOLBARS.items():
        toolbars.setdefault(name, visible)
    return toolbars


class SettingsManager:
    """Owns the canonical settings file and the live list of connection profiles.

    Construction creates the config directory and loads the file. When the
    load fails (usually because the current version has never run), an empty
    document is saved and loaded again so that the legacy migration pass can
    pull settings from an older installation.

    Not safe for concurrent use.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        *,
        home: Optional[Path] = None,
        legacy_locations: Optional[Sequence[LegacyLocation]] = None,
        sibling_archives: Optional[Sequence[Tuple[Path, str]]] = None,
        scan_roots: Optional[Sequence[Path]] = None,
        cipher: Optional[PasswordCipher] = None,
        bootstrap: bool = True,
    ) -> None:
        self.config_path = Path(config_path) if config_path is not None else paths.config_file_path(home)
        self.settings = SettingsDocument()
        self.cipher = cipher
        self.last_import_report: Optional[ImportReport] = None
        self._connections: List[ConnectionSettings] = []

        locations = list(legacy_locations) if legacy_locations is not None else default_legacy_locations(home)
        self._migration = LegacyMigrationChain(locations)
        self._id_resolver = AnonymousIdResolver(
            archives=sibling_archives if sibling_archives is not None else paths.sibling_archives(home),
            legacy_locations=locations,
            scan_roots=scan_roots if scan_roots is not None else paths.legacy_scan_roots(home),
        )

        if bootstrap:
            self._bootstrap()

    def _bootstrap(self) -> None:
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _logger.error(
                "Could not create settings path",
                extra={"path": str(self.config_path.parent), "reason": str(exc)},
            )

        if not self.load():
            self.save()
            self.load()

        _logger.info("SettingsManager initialized", extra={"path": str(self.config_path), "notify": False})

    # Persistence -------------------------------------------------------
    def load(self) -> bool:
        """Load settings from the canonical file. On failure nothing is modified."""
        try:
            document = read_document(self.config_path)
        except ConfigNotFoundError:
            _logger.info("Settings file not found", extra={"path": str(self.config_path)})
            return False
        except SettingsError as exc:
            _logger.error("Failed to load settings", extra={"path": str(self.config_path), "reason": str(exc)})
            return False

        if not isinstance(document, dict):
            # Valid JSON of the wrong shape loads as an empty document.
            _logger.warning(
                "Settings file is not a JSON object, using defaults",
                extra={"path": str(self.config_path)},
            )
            document = {}

        self._load_from_mapping(document)
        return True

    def save(self) -> bool:
        """Rewrite the whole canonical file."""
        try:
            write_document(self.config_path, self.to_mapping())
        except SettingsError as exc:
            _logger.error("Could not write settings", extra={"path": str(self.config_path), "reason": str(exc)})
            return False
        _logger.info("Settings saved", extra={"path": str(self.config_path)})
        return True

    def _load_from_mapping(self, data: Dict[str, Any]) -> None:
        s = self.settings
        s.version = str(data.get("version") or "")
        s.uuid_encoding = UUIDEncoding.from_raw(data.get("uuidEncoding"), UUIDEncoding.DEFAULT)
        s.view_mode = ViewMode.from_raw(data.get("viewMode"), ViewMode.CUSTOM)
        s.time_zone = SupportedTimes.from_raw(data.get("timeZone"), SupportedTimes.UTC)
        s.autocompletion_mode = AutocompletionMode.from_raw(
            data.get("autocompletionMode"), AutocompletionMode.ALL
        )

        s.auto_expand = to_bool(data.get("autoExpand"), default=True)
        s.auto_exec = to_bool(data.get("autoExec"), default=True)
        s.minimize_to_tray = to_bool(data.get("minimizeToTray"))
        s.line_numbers = to_bool(data.get("lineNumbers"))
        s.imported = to_bool(data.get("imported"))
        s.program_exited_normally = to_bool(data.get("programExitedNormally"), default=True)
        s.disable_https_features = to_bool(data.get("disableHttpsFeatures"))
        s.debug_mode = to_bool(data.get("debugMode"))
        s.load_mongo_rc_js = to_bool(data.get("loadMongoRcJs"))
        s.disable_connection_shortcuts = to_bool(data.get("disableConnectionShortcuts"))

        if "acceptedEulaVersions" in data:
            s.accepted_eula_versions = _string_set(data["acceptedEulaVersions"])
        if "dbVersionsConnected" in data:
            s.db_versions_connected = _string_set(data["dbVersionsConnected"])

        if not s.anonymous_id:
            s.anonymous_id = self._id_resolver.resolve(data)

        s.batch_size = to_int(data.get("batchSize")) or DEFAULT_BATCH_SIZE
        if "checkForUpdates" in data:
            s.check_for_updates = to_bool(data["checkForUpdates"])

        s.current_style = str(data.get("style") or "") or DEFAULT_STYLE
        s.text_font_family = str(data.get("textFontFamily") or "")
        s.set_text_font_point_size(to_int(data.get("textFontPointSize"), default=-1))

        if "mongoTimeoutSec" in data:
            s.mongo_timeout_sec = to_int(data["mongoTimeoutSec"], default=s.mongo_timeout_sec)
        if "shellTimeoutSec" in data:
            s.shell_timeout_sec = to_int(data["shellTimeoutSec"], default=s.shell_timeout_sec)

        self._connections.clear()
        for item in self._iter_profiles(data.get("connections")):
            self.add_connection(item)

        s.toolbars = _toolbars(data.get("toolbars"))
        cache = data.get("cacheData")
        s.cache = dict(cache) if isinstance(cache, dict) else {}

        self.import_from_old_version()

    def _iter_profiles(self, raw: Any) -> Iterable[ConnectionSettings]:
        if not isinstance(raw, list):
            return
        for entry in raw:
            try:
                yield ConnectionSettings.from_dict(entry, self.cipher)
            except ProfileFormatError as exc:
                _logger.warning(
                    "Skipping malformed connection",
                    extra={"reason": str(exc), "profile": str(redact_profile(entry))},
                )

    def to_mapping(self) -> Dict[str, Any]:
        s = self.settings
        return {
            "version": SCHEMA_VERSION,
            "uuidEncoding": int(s.uuid_encoding),
            "timeZone": int(s.time_zone),
            "viewMode": int(s.view_mode),
            "autoExpand": s.auto_expand,
            "lineNumbers": s.line_numbers,
            "autocompletionMode": int(s.autocompletion_mode),
            "loadMongoRcJs": s.load_mongo_rc_js,
            "disableConnectionShortcuts": s.disable_connection_shortcuts,
            "acceptedEulaVersions": sorted(s.accepted_eula_versions),
            "dbVersionsConnected": sorted(s.db_versions_connected),
            "batchSize": s.batch_size,
            "checkForUpdates": s.check_for_updates,
            "mongoTimeoutSec": s.mongo_timeout_sec,
            "shellTimeoutSec": s.shell_timeout_sec,
            "style": s.current_style,
            "textFontFamily": s.text_font_family,
            "textFontPointSize": s.text_font_point_size,
            "connections": [conn.to_dict(self.cipher) for conn in self._connections],
            "autoExec": s.auto_exec,
            "minimizeToTray": s.minimize_to_tray,
            "toolbars": dict(s.toolbars),
            "imported": s.imported,
            "anonymousID": s.anonymous_id,
            "cacheData": dict(s.cache),
            "programExitedNormally": s.program_exited_normally,
            "disableHttpsFeatures": s.disable_https_features,
            "debugMode": s.debug_mode,
        }

    # Migration & import --------------------------------------------------
    def import_from_old_version(self) -> bool:
        return self._migration.import_from_old_version(self)

    def load_connections_from_file(self, path: Path | str) -> bool:
        """Merge profiles from an external file; True iff at least one was added."""
        report = import_connections_from_file(path, self._connections, cipher=self.cipher)
        self.last_import_report = report
        if report.added:
            self.save()
        return report.added > 0

    # Connections ---------------------------------------------------------
    @property
    def connections(self) -> List[ConnectionSettings]:
        return self._connections

    def add_connection(self, connection: ConnectionSettings) -> None:
        self._connections.append(connection)

    def remove_connection(self, connection: ConnectionSettings) -> None:
        for index, existing in enumerate(self._connections):
            if existing is connection:
                del self._connections[index]
                return

    def reorder_connections(self, connections: Sequence[ConnectionSettings]) -> None:
        self._connections[:] = list(connections)

    def get_connection_settings_by_uuid(self, uuid: str) -> Optional[ConnectionSettings]:
        for conn in self._connections:
            if conn.uuid == uuid:
                return conn
        _logger.warning("Failed to find connection settings object by UUID", extra={"uuid": uuid})
        return None

    def imported_connections_count(self) -> int:
        return sum(1 for conn in self._connections if conn.imported)

    # Global preferences ----------------------------------------------------
    @property
    def anonymous_id(self) -> str:
        return self.settings.anonymous_id

    def set_toolbar_settings(self, toolbar_name: str, visible: bool) -> None:
        self.settings.toolbars[toolbar_name] = visible

    def add_cache_data(self, key: str, value: Any) -> None:
        self.settings.cache[key] = value

    def cache_data(self, key: str) -> Any:
        return self.settings.cache.get(key)

    def add_accepted_eula_version(self, version: str) -> None:
        self.settings.accepted_eula_versions.add(version)

    def add_db_version_connected(self, version: str) -> bool:
        """Record a server version; returns True when it was not seen before."""
        if version in self.settings.db_versions_connected:
            return False
        self.settings.db_versions_connected.add(version)
        return True


__all__ = [
    "SettingsManager",
    "SettingsDocument",
    "SCHEMA_VERSION",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_STYLE",
    "DEFAULT_TOOLBARS",
]
