from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from src.core.enums import to_bool, to_int
from src.core.errors import ProfileFormatError
from src.lib.secret_cipher import PasswordCipher

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 27017
DEFAULT_SSH_PORT = 22
DEFAULT_MECHANISM = "SCRAM-SHA-1"


def _split(data: Dict[str, Any], known: tuple[str, ...]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


def _port(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        raise ProfileFormatError(f"Invalid port value: {value!r}")
    if not isinstance(value, (int, float, str)):
        raise ProfileFormatError(f"Invalid port value: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ProfileFormatError(f"Invalid port value: {value!r}")
    return to_int(value, default)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _reveal(cipher: Optional[PasswordCipher], value: str) -> str:
    return cipher.decrypt(value) if cipher is not None and value else value


def _hide(cipher: Optional[PasswordCipher], value: str) -> str:
    return cipher.encrypt(value) if cipher is not None and value else value


@dataclass
class CredentialSettings:
    user_name: str = ""
    user_password: str = ""
    database_name: str = "admin"
    mechanism: str = DEFAULT_MECHANISM
    use_manually_visible_dbs: bool = False
    manually_visible_dbs: str = ""
    enabled: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        "userName",
        "userPassword",
        "databaseName",
        "mechanism",
        "useManuallyVisibleDbs",
        "manuallyVisibleDbs",
        "enabled",
    )

    @classmethod
    def from_dict(cls, data: Any, cipher: Optional[PasswordCipher] = None) -> "CredentialSettings":
        if not isinstance(data, dict):
            raise ProfileFormatError("Credential entry is not an object")
        return cls(
            user_name=_text(data.get("userName")),
            user_password=_reveal(cipher, _text(data.get("userPassword"))),
            database_name=_text(data.get("databaseName", "admin")),
            mechanism=_text(data.get("mechanism", DEFAULT_MECHANISM)),
            use_manually_visible_dbs=to_bool(data.get("useManuallyVisibleDbs")),
            manually_visible_dbs=_text(data.get("manuallyVisibleDbs")),
            enabled=to_bool(data.get("enabled"), default=True),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self, cipher: Optional[PasswordCipher] = None) -> Dict[str, Any]:
        return {
            **self.extra,
            "userName": self.user_name,
            "userPassword": _hide(cipher, self.user_password),
            "databaseName": self.database_name,
            "mechanism": self.mechanism,
            "useManuallyVisibleDbs": self.use_manually_visible_dbs,
            "manuallyVisibleDbs": self.manually_visible_dbs,
            "enabled": self.enabled,
        }


@dataclass
class SshSettings:
    host: str = ""
    port: int = DEFAULT_SSH_PORT
    user_name: str = ""
    user_password: str = ""
    private_key_file: str = ""
    public_key_file: str = ""
    passphrase: str = ""
    auth_method: str = "password"
    enabled: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        "host",
        "port",
        "userName",
        "userPassword",
        "privateKeyFile",
        "publicKeyFile",
        "passphrase",
        "method",
        "enabled",
    )

    @classmethod
    def from_dict(cls, data: Any, cipher: Optional[PasswordCipher] = None) -> "SshSettings":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ProfileFormatError("SSH settings are not an object")
        return cls(
            host=_text(data.get("host")),
            port=_port(data.get("port"), DEFAULT_SSH_PORT),
            user_name=_text(data.get("userName")),
            user_password=_reveal(cipher, _text(data.get("userPassword"))),
            private_key_file=_text(data.get("privateKeyFile")),
            public_key_file=_text(data.get("publicKeyFile")),
            passphrase=_reveal(cipher, _text(data.get("passphrase"))),
            auth_method=_text(data.get("method", "password")),
            enabled=to_bool(data.get("enabled")),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self, cipher: Optional[PasswordCipher] = None) -> Dict[str, Any]:
        return {
            **self.extra,
            "host": self.host,
            "port": self.port,
            "userName": self.user_name,
            "userPassword": _hide(cipher, self.user_password),
            "privateKeyFile": self.private_key_file,
            "publicKeyFile": self.public_key_file,
            "passphrase": _hide(cipher, self.passphrase),
            "method": self.auth_method,
            "enabled": self.enabled,
        }


@dataclass
class SslSettings:
    enabled: bool = False
    pem_key_file: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("sslEnabled", "pemKeyFile")

    @classmethod
    def from_dict(cls, data: Any) -> "SslSettings":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ProfileFormatError("SSL settings are not an object")
        return cls(
            enabled=to_bool(data.get("sslEnabled")),
            pem_key_file=_text(data.get("pemKeyFile")),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**self.extra, "sslEnabled": self.enabled, "pemKeyFile": self.pem_key_file}


@dataclass(eq=False)
class ConnectionSettings:
    """A saved server connection.

    Identity is ``uuid``; two records are the same profile only when they are
    the same object or share a uuid. Host, port, database and credential
    fields are compared only by the duplicate detectors of the importers.
    Keys this class does not model are kept in ``extra`` and written back.
    """

    connection_name: str = ""
    server_host: str = DEFAULT_HOST
    server_port: int = DEFAULT_PORT
    default_database: str = ""
    imported: bool = False
    credentials: List[CredentialSettings] = field(default_factory=list)
    ssh: SshSettings = field(default_factory=SshSettings)
    ssl: SslSettings = field(default_factory=SslSettings)
    uuid: str = field(default_factory=lambda: str(uuid4()))
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = (
        "uuid",
        "connectionName",
        "serverHost",
        "serverPort",
        "defaultDatabase",
        "imported",
        "credentials",
        "ssh",
        "ssl",
    )

    @classmethod
    def from_dict(cls, data: Any, cipher: Optional[PasswordCipher] = None) -> "ConnectionSettings":
        if not isinstance(data, dict):
            raise ProfileFormatError("Connection entry is not an object")

        raw_credentials = data.get("credentials") or []
        if not isinstance(raw_credentials, list):
            raise ProfileFormatError("Connection credentials are not a list")

        profile_id = _text(data.get("uuid")).strip("{}")
        return cls(
            connection_name=_text(data.get("connectionName")),
            server_host=_text(data.get("serverHost", DEFAULT_HOST)),
            server_port=_port(data.get("serverPort"), DEFAULT_PORT),
            default_database=_text(data.get("defaultDatabase")),
            imported=to_bool(data.get("imported")),
            credentials=[CredentialSettings.from_dict(item, cipher) for item in raw_credentials],
            ssh=SshSettings.from_dict(data.get("ssh"), cipher),
            ssl=SslSettings.from_dict(data.get("ssl")),
            uuid=profile_id or str(uuid4()),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self, cipher: Optional[PasswordCipher] = None) -> Dict[str, Any]:
        return {
            **self.extra,
            "uuid": self.uuid,
            "connectionName": self.connection_name,
            "serverHost": self.server_host,
            "serverPort": self.server_port,
            "defaultDatabase": self.default_database,
            "imported": self.imported,
            "credentials": [cred.to_dict(cipher) for cred in self.credentials],
            "ssh": self.ssh.to_dict(cipher),
            "ssl": self.ssl.to_dict(),
        }

    def primary_credential(self) -> Optional[CredentialSettings]:
        return self.credentials[0] if self.credentials else None

    def add_credential(self, credential: CredentialSettings) -> None:
        self.credentials.append(credential)


__all__ = ["ConnectionSettings", "CredentialSettings", "SshSettings", "SslSettings"]
