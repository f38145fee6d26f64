"""One-time import of settings written by older client versions.

The location list is ordered newest first and must be extended with care:
each release adds its own config path at the top. Only the first location
that exists on disk is imported, and only while ``imported`` is False.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from src.core.enums import to_bool, to_int
from src.core.errors import ProfileFormatError, SettingsError
from src.lib import paths
from src.lib.json_codec import read_document
from src.services.connection_settings import (
    ConnectionSettings,
    CredentialSettings,
    SshSettings,
)

if TYPE_CHECKING:
    from src.services.settings_store import SettingsManager

_logger = logging.getLogger(__name__)

LEGACY_MECHANISM = "MONGODB-CR"
MAX_HOST_LENGTH = 300
# Redundantly minted a fresh anonymous id; never trusted as an id source.
VERSION_UNTRUSTED_ID = "1.1.0-Beta"
# Last release before ``anonymousID`` existed; id lookups stop here.
VERSION_BEFORE_ID = "1.0-RC1"


class FormatEra(Enum):
    PRE_1_0 = "pre-1.0"
    MODERN = "modern"


@dataclass(frozen=True)
class LegacyLocation:
    version: str
    path: Path
    era: FormatEra = FormatEra.MODERN


def default_legacy_locations(home: Optional[Path] = None) -> List[LegacyLocation]:
    base = Path(home) if home is not None else paths.get_home_dir()
    robo3t = base / ".3T" / "robo-3t"
    robomongo = base / ".3T" / "robomongo"
    config = base / ".config" / "robomongo"
    return [
        LegacyLocation("1.4.3", robo3t / "1.4.3" / "robo3t.json"),
        LegacyLocation("1.4.2", robo3t / "1.4.2" / "robo3t.json"),
        LegacyLocation("1.4.1", robo3t / "1.4.1" / "robo3t.json"),
        LegacyLocation("1.4.0", robo3t / "1.4.0" / "robo3t.json"),
        LegacyLocation("1.3.1", robo3t / "1.3.1" / "robo3t.json"),
        LegacyLocation("1.3.0", robo3t / "1.3.0" / "robo3t.json"),
        LegacyLocation("1.2.1", robo3t / "1.2.1" / "robo3t.json"),
        LegacyLocation("1.2.0", robo3t / "1.2.0" / "robo3t.json"),
        LegacyLocation("1.1.1", robo3t / "1.1.1" / "robo3t.json"),
        LegacyLocation(VERSION_UNTRUSTED_ID, robomongo / "1.1.0-Beta" / "robomongo.json"),
        LegacyLocation("1.0.0", robomongo / "1.0.0" / "robomongo.json"),
        LegacyLocation(VERSION_BEFORE_ID, config / "1.0" / "robomongo.json"),
        LegacyLocation("0.9", config / "0.9" / "robomongo.json"),
        LegacyLocation("0.8.5", config / "robomongo.json", FormatEra.PRE_1_0),
    ]


def _read_mapping(path: Path) -> Optional[Dict[str, Any]]:
    try:
        document = read_document(path)
    except SettingsError as exc:
        _logger.warning("Skipping legacy config", extra={"path": str(path), "reason": str(exc)})
        return None
    return document if isinstance(document, dict) else {}


# Pre-1.0 flat profiles -----------------------------------------------------
def _profile_from_flat(raw: Dict[str, Any]) -> ConnectionSettings:
    conn = ConnectionSettings(
        connection_name=str(raw.get("connectionName") or ""),
        server_host=str(raw.get("serverHost") or "")[:MAX_HOST_LENGTH],
        server_port=to_int(raw.get("serverPort")),
        default_database=str(raw.get("defaultDatabase") or ""),
        imported=True,
    )

    if "sshAuthMethod" in raw:
        auth = to_int(raw.get("sshAuthMethod"))
        conn.ssh = SshSettings(
            host=str(raw.get("sshHost") or ""),
            user_name=str(raw.get("sshUserName") or ""),
            port=to_int(raw.get("sshPort")),
            user_password=str(raw.get("sshUserPassword") or ""),
            public_key_file=str(raw.get("sshPublicKey") or ""),
            private_key_file=str(raw.get("sshPrivateKey") or ""),
            passphrase=str(raw.get("sshPassphrase") or ""),
            enabled=auth in (1, 2),
            auth_method="publickey" if auth == 2 else "password",
        )

    # The pre-1.0 format flags its TLS block with "sshEnabled".
    if "sshEnabled" in raw:
        conn.ssl.enabled = to_bool(raw.get("enabled"))
        conn.ssl.pem_key_file = str(raw.get("sslPemKeyFile") or "")

    credentials = raw.get("credentials")
    for item in credentials if isinstance(credentials, list) else []:
        if not isinstance(item, dict):
            continue
        conn.add_credential(
            CredentialSettings(
                user_name=str(item.get("userName") or ""),
                user_password=str(item.get("userPassword") or ""),
                database_name=str(item.get("databaseName") or ""),
                mechanism=LEGACY_MECHANISM,
                use_manually_visible_dbs=to_bool(item.get("useManuallyVisibleDbs")),
                manually_visible_dbs=str(item.get("manuallyVisibleDbs") or ""),
                enabled=to_bool(item.get("enabled")),
            )
        )
    return conn


def _matches_existing(conn: ConnectionSettings, existing: ConnectionSettings) -> bool:
    if (
        conn.server_port != existing.server_port
        or conn.server_host != existing.server_host
        or conn.default_database != existing.default_database
    ):
        return False

    cred, existing_cred = conn.primary_credential(), existing.primary_credential()
    if (cred is None) != (existing_cred is None):
        return False
    if cred is not None and existing_cred is not None and (
        cred.database_name != existing_cred.database_name
        or cred.user_name != existing_cred.user_name
        or cred.user_password != existing_cred.user_password
        or cred.enabled != existing_cred.enabled
    ):
        return False

    ssh, existing_ssh = conn.ssh, existing.ssh
    return (
        ssh.enabled == existing_ssh.enabled
        and ssh.port == existing_ssh.port
        and ssh.host == existing_ssh.host
        and ssh.private_key_file == existing_ssh.private_key_file
        and ssh.user_password == existing_ssh.user_password
        and ssh.user_name == existing_ssh.user_name
    )


def import_pre_1_0(manager: "SettingsManager", path: Path) -> bool:
    data = _read_mapping(path)
    if data is None:
        return False

    raw_connections = data.get("connections")
    added = 0
    for raw in raw_connections if isinstance(raw_connections, list) else []:
        if not isinstance(raw, dict):
            continue
        conn = _profile_from_flat(raw)
        if any(_matches_existing(conn, existing) for existing in manager.connections):
            _logger.info("Skipping already known legacy connection", extra={"connection": conn.connection_name})
            continue
        manager.add_connection(conn)
        added += 1

    _logger.info("Imported pre-1.0 connections", extra={"path": str(path), "added": added})
    return True


# 1.0 and newer ---------------------------------------------------------------
def import_modern(manager: "SettingsManager", path: Path) -> bool:
    data = _read_mapping(path)
    if data is None:
        return False

    s = manager.settings
    s.auto_expand = to_bool(data.get("autoExpand"))
    s.line_numbers = to_bool(data.get("lineNumbers"))
    s.debug_mode = to_bool(data.get("debugMode"))
    s.shell_timeout_sec = to_int(data.get("shellTimeoutSec"))

    raw_connections = data.get("connections")
    added = 0
    for raw in raw_connections if isinstance(raw_connections, list) else []:
        try:
            conn = ConnectionSettings.from_dict(raw, manager.cipher)
        except ProfileFormatError as exc:
            _logger.warning("Skipping malformed legacy connection", extra={"path": str(path), "reason": str(exc)})
            continue
        conn.imported = True
        manager.add_connection(conn)
        added += 1

    _logger.info("Imported settings from previous version", extra={"path": str(path), "added": added})
    return True


ImportFunction = Callable[["SettingsManager", Path], bool]

ERA_IMPORTERS: Dict[FormatEra, ImportFunction] = {
    FormatEra.PRE_1_0: import_pre_1_0,
    FormatEra.MODERN: import_modern,
}


class LegacyMigrationChain:
    """Imports from the newest existing legacy location, at most once."""

    def __init__(self, locations: List[LegacyLocation]) -> None:
        self.locations = list(locations)

    def import_from_old_version(self, manager: "SettingsManager") -> bool:
        """Return True when a legacy location was consumed by this call."""
        if manager.settings.imported:
            return False

        for location in self.locations:
            if not location.path.exists():
                continue
            importer = ERA_IMPORTERS[location.era]
            ok = importer(manager, location.path)
            if not ok:
                _logger.warning(
                    "Legacy import failed, not retrying older versions",
                    extra={"version": location.version, "path": str(location.path)},
                )
            manager.settings.imported = True
            manager.save()
            return True
        return False


__all__ = [
    "FormatEra",
    "LegacyLocation",
    "LegacyMigrationChain",
    "ERA_IMPORTERS",
    "default_legacy_locations",
    "import_modern",
    "import_pre_1_0",
    "VERSION_UNTRUSTED_ID",
    "VERSION_BEFORE_ID",
]
