from __future__ import annotations

from pathlib import Path


class SettingsError(Exception):
    """Base exception for settings file problems, carrying the offending path."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ConfigNotFoundError(SettingsError):
    """The file does not exist. Callers treat this as 'nothing to do'."""


class ConfigAccessError(SettingsError):
    """The file exists but cannot be opened or read."""


class ConfigFormatError(SettingsError):
    """The file was read but does not parse as a JSON document."""


class ConfigWriteError(SettingsError):
    """The destination could not be opened for a truncating write."""


class ProfileFormatError(SettingsError):
    pass


__all__ = [
    "SettingsError",
    "ConfigNotFoundError",
    "ConfigAccessError",
    "ConfigFormatError",
    "ConfigWriteError",
    "ProfileFormatError",
]
