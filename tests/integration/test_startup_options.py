from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from src.app import run
from src.lib.paths import cipher_key_path, config_file_path
from src.lib.secret_cipher import FernetPasswordCipher
from src.logging.gui_bridge import LogPanelHandler
from src.services.settings_store import SettingsManager


@pytest.fixture()
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(run, "configure_logging", lambda *args, **kwargs: logging.getLogger())
    monkeypatch.setattr(run, "apply_debug_mode", lambda enabled: None)


def test_parser_accepts_short_and_long_config_option() -> None:
    parser, option = run.build_parser()
    assert parser.parse(["robo3t", "--config-file", "/tmp/a.json"])
    assert parser.isSet(option)
    assert parser.value(option) == "/tmp/a.json"

    parser, option = run.build_parser()
    assert parser.parse(["robo3t", "-c", "/tmp/b.json"])
    assert parser.value(option) == "/tmp/b.json"


@pytest.mark.integration
def test_bootstrap_imports_config_file_and_flags_unclean_exit(home: Path, write_json, quiet_logging) -> None:
    source = write_json(home / "team.json", {"connections": [{"connectionName": "team", "serverHost": "db9"}]})

    manager = run.bootstrap_settings(["robo3t", "--config-file", str(source)])

    assert [c.connection_name for c in manager.connections] == ["[External] team"]
    saved = json.loads(config_file_path(home).read_text(encoding="utf-8"))
    assert saved["programExitedNormally"] is False

    assert run.mark_clean_exit(manager)
    saved = json.loads(config_file_path(home).read_text(encoding="utf-8"))
    assert saved["programExitedNormally"] is True


@pytest.mark.integration
def test_bootstrap_survives_missing_config_file(home: Path, quiet_logging, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        manager = run.bootstrap_settings(
            ["robo3t", "-c", str(home / "absent.json")],
            manager_factory=lambda: SettingsManager(home=home),
        )

    assert manager.connections == []
    assert "Failed to load connections from config file" in caplog.text


@pytest.mark.integration
def test_bootstrap_routes_panel_emitter_into_logging(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    factories = []
    monkeypatch.setattr(run, "configure_logging", lambda factory, **kwargs: factories.append(factory))
    monkeypatch.setattr(run, "apply_debug_mode", lambda enabled: None)
    captured = []

    run.bootstrap_settings(["robo3t"], manager_factory=lambda: SettingsManager(home=home), panel_emitter=captured.append)

    handler = factories[0]()
    assert isinstance(handler, LogPanelHandler)
    handler.handle(logging.LogRecord("robo3t", logging.INFO, __file__, 1, "saved", (), None))
    assert [r.message for r in captured] == ["saved"]


@pytest.mark.integration
def test_bootstrap_encrypts_profile_passwords_on_disk(home: Path, write_json, quiet_logging) -> None:
    source = write_json(
        home / "team.json",
        {"connections": [{"serverHost": "db9", "credentials": [{"userName": "app", "userPassword": "s3cret"}]}]},
    )

    manager = run.bootstrap_settings(["robo3t", "-c", str(source)])

    assert manager.connections[0].primary_credential().user_password == "s3cret"
    saved = json.loads(config_file_path(home).read_text(encoding="utf-8"))
    stored = saved["connections"][0]["credentials"][0]["userPassword"]
    assert stored and stored != "s3cret"
    assert cipher_key_path(home).exists()

    reopened = SettingsManager(home=home, cipher=FernetPasswordCipher(cipher_key_path(home)))
    assert reopened.connections[0].primary_credential().user_password == "s3cret"
