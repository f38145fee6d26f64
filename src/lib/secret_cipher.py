"""
Password cipher used when connection profiles are written to or read from disk.

The settings core never encrypts on its own; profiles call into a
``PasswordCipher`` when one is configured. ``FernetPasswordCipher`` keeps its
symmetric key in a key file shared by all client versions so that legacy
configs written by an older version decrypt with the same key.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken

from src.lib.paths import cipher_key_path

_logger = logging.getLogger(__name__)


class PasswordCipher(Protocol):
    def encrypt(self, text: str) -> str: ...

    def decrypt(self, text: str) -> str: ...


class FernetPasswordCipher:
    """Symmetric cipher backed by ``cryptography.fernet``.

    Text that is not a valid token for the current key (plain passwords from
    older configs, or values written with a lost key) is returned unchanged.
    """

    def __init__(self, key_path: Optional[Path] = None) -> None:
        self.key_path = Path(key_path) if key_path is not None else cipher_key_path()
        self._fernet = Fernet(self._load_or_create_key())

    def _load_or_create_key(self) -> bytes:
        if self.key_path.exists():
            key = self.key_path.read_bytes().strip()
            if key:
                return key
            _logger.warning("Cipher key file is empty, generating a new key", extra={"path": str(self.key_path)})

        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        self.key_path.write_bytes(key)
        _logger.info("Created cipher key file", extra={"path": str(self.key_path)})
        return key

    def encrypt(self, text: str) -> str:
        if not text:
            return text
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, text: str) -> str:
        if not text:
            return text
        try:
            return self._fernet.decrypt(text.encode("utf-8")).decode("utf-8")
        except (InvalidToken, ValueError):
            return text


__all__ = ["PasswordCipher", "FernetPasswordCipher"]
