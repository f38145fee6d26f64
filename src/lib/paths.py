"""Path utilities for the settings core.

- Resolves the user home directory (``ROBO3T_HOME`` overrides it)
- Provides the canonical config file and cipher key file for the running version
- Lists the sibling-product archives and legacy scan roots used for identity recovery

Legacy config locations live next to their import functions in
``src.services.legacy_import``.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Tuple

APP_VERSION = "1.4.4"
_CONFIG_ROOT = Path(".3T") / "robo-3t"
_CONFIG_FILENAME = "robo3t.json"
_KEY_FILENAME = "robo3t.key"
_HOME_ENV = "ROBO3T_HOME"


def get_home_dir() -> Path:
    """Return the directory all config paths are relative to.

    Prefers %ROBO3T_HOME%. Falls back to the user's home directory if unset.
    """
    override = os.getenv(_HOME_ENV)
    if override:
        return Path(override)
    return Path.home()


def _home(home: Optional[Path]) -> Path:
    return Path(home) if home is not None else get_home_dir()


def config_root(home: Optional[Path] = None) -> Path:
    return _home(home) / _CONFIG_ROOT


def config_dir(home: Optional[Path] = None, version: str = APP_VERSION) -> Path:
    """Return the per-version config directory (``~/.3T/robo-3t/<version>``)."""
    return config_root(home) / version


def config_file_path(home: Optional[Path] = None, version: str = APP_VERSION) -> Path:
    """Return the canonical config file for the given application version."""
    return config_dir(home, version) / _CONFIG_FILENAME


def cipher_key_path(home: Optional[Path] = None) -> Path:
    return config_root(home) / _KEY_FILENAME


def sibling_archives(home: Optional[Path] = None) -> List[Tuple[Path, str]]:
    """Return (zip archive, property entry) pairs of sibling 3T products."""
    base = _home(home) / ".3T"
    return [
        (base / "studio-3t" / "properties.dat", "Studio3T.properties"),
        (base / "data-man-mongodb" / "properties.dat", "3T.data-man-mongodb.properties"),
        (base / "mongochef-pro" / "properties.dat", "3T.mongochef-pro.properties"),
        (base / "mongochef-enterprise" / "properties.dat", "3T.mongochef-enterprise.properties"),
    ]


def legacy_scan_roots(home: Optional[Path] = None) -> List[Path]:
    """Return the directories recursively scanned for ``robo*.json`` files."""
    base = _home(home) / ".3T"
    return [base / "robo-3t", base / "robomongo"]


__all__ = [
    "APP_VERSION",
    "get_home_dir",
    "config_root",
    "config_dir",
    "config_file_path",
    "cipher_key_path",
    "sibling_archives",
    "legacy_scan_roots",
]
