from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from src.core.enums import AutocompletionMode, SupportedTimes, UUIDEncoding, ViewMode
from src.lib.paths import config_file_path, sibling_archives
from src.services.connection_settings import ConnectionSettings, CredentialSettings
from src.services.settings_store import DEFAULT_TOOLBARS, SCHEMA_VERSION, SettingsManager

ANON_ID = "5a5a5a5a-5a5a-4a5a-8a5a-5a5a5a5a5a5a"


def _manager(home: Path) -> SettingsManager:
    return SettingsManager(home=home)


def _canonical(home: Path) -> Path:
    return config_file_path(home)


def test_bootstrap_creates_file_with_defaults(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    saved = json.loads(_canonical(tmp_path).read_text(encoding="utf-8"))
    assert saved["version"] == SCHEMA_VERSION
    assert saved["batchSize"] == 50
    assert saved["anonymousID"] == ""
    assert manager.anonymous_id

    manager.save()
    saved = json.loads(_canonical(tmp_path).read_text(encoding="utf-8"))
    assert saved["anonymousID"] == manager.anonymous_id
    assert manager.settings.view_mode is ViewMode.TREE
    assert manager.settings.toolbars == DEFAULT_TOOLBARS
    assert manager.connections == []


def test_round_trip_preserves_every_field(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    s = manager.settings
    s.uuid_encoding = UUIDEncoding.CSHARP_LEGACY
    s.time_zone = SupportedTimes.LOCAL_TIME
    s.view_mode = ViewMode.TABLE
    s.autocompletion_mode = AutocompletionMode.NO_COLLECTION_NAMES
    s.load_mongo_rc_js = True
    s.auto_expand = False
    s.auto_exec = False
    s.minimize_to_tray = True
    s.line_numbers = True
    s.disable_connection_shortcuts = True
    s.program_exited_normally = False
    s.disable_https_features = True
    s.debug_mode = True
    s.batch_size = 200
    s.check_for_updates = False
    s.current_style = "Fusion"
    s.text_font_family = "Menlo"
    s.set_text_font_point_size(13)
    s.mongo_timeout_sec = 30
    s.set_shell_timeout_sec(-90)
    manager.add_accepted_eula_version("1.4.4")
    manager.add_db_version_connected("4.4.1")
    manager.set_toolbar_settings("logs", True)
    manager.add_cache_data("lastExportDir", {"path": "/tmp", "n": 2})
    conn = ConnectionSettings(connection_name="prod", server_host="db1", default_database="sales")
    conn.add_credential(CredentialSettings(user_name="app", database_name="sales"))
    manager.add_connection(conn)
    original_id = manager.anonymous_id
    expected = manager.to_mapping()

    assert manager.save()
    reloaded = _manager(tmp_path)

    assert reloaded.to_mapping() == expected
    assert reloaded.anonymous_id == original_id
    assert reloaded.settings.shell_timeout_sec == 90
    assert reloaded.get_connection_settings_by_uuid(conn.uuid).connection_name == "prod"
    assert reloaded.cache_data("lastExportDir") == {"path": "/tmp", "n": 2}


def test_schema_version_normalized_on_save(tmp_path: Path, write_json) -> None:
    write_json(_canonical(tmp_path), {"version": "0.1", "anonymousID": ANON_ID, "imported": True})
    manager = _manager(tmp_path)

    assert manager.settings.version == "0.1"
    manager.save()

    assert json.loads(_canonical(tmp_path).read_text(encoding="utf-8"))["version"] == SCHEMA_VERSION


@pytest.mark.parametrize(
    ("key", "value", "attr", "expected"),
    [
        ("uuidEncoding", 7, "uuid_encoding", UUIDEncoding.DEFAULT),
        ("timeZone", -3, "time_zone", SupportedTimes.UTC),
        ("viewMode", 42, "view_mode", ViewMode.CUSTOM),
        ("autocompletionMode", 5, "autocompletion_mode", AutocompletionMode.ALL),
    ],
)
def test_enum_out_of_range_falls_back(tmp_path: Path, write_json, key, value, attr, expected) -> None:
    write_json(_canonical(tmp_path), {key: value, "imported": True})
    manager = _manager(tmp_path)
    assert getattr(manager.settings, attr) is expected


def test_missing_batch_size_defaults_to_50(tmp_path: Path, write_json) -> None:
    write_json(_canonical(tmp_path), {"imported": True, "batchSize": 0})
    assert _manager(tmp_path).settings.batch_size == 50

    write_json(_canonical(tmp_path), {"imported": True})
    assert _manager(tmp_path).settings.batch_size == 50


def test_missing_logs_toolbar_defaults_hidden(tmp_path: Path, write_json) -> None:
    write_json(_canonical(tmp_path), {"imported": True, "toolbars": {"exec": False}})
    toolbars = _manager(tmp_path).settings.toolbars

    assert toolbars["logs"] is False
    assert toolbars["exec"] is False
    assert toolbars["connect"] and toolbars["open_save"] and toolbars["explorer"]

    write_json(_canonical(tmp_path), {"imported": True, "toolbars": {}})
    toolbars = _manager(tmp_path).settings.toolbars
    assert toolbars == {"connect": True, "open_save": True, "exec": True, "explorer": True, "logs": False}


def test_absent_booleans_use_documented_defaults(tmp_path: Path, write_json) -> None:
    write_json(_canonical(tmp_path), {"imported": True})
    s = _manager(tmp_path).settings

    assert s.auto_expand is True
    assert s.auto_exec is True
    assert s.program_exited_normally is True
    assert s.minimize_to_tray is False
    assert s.debug_mode is False
    assert s.check_for_updates is True
    assert s.mongo_timeout_sec == 10
    assert s.shell_timeout_sec == 15
    assert s.current_style == "Native"
    assert s.text_font_point_size == -1


def test_failed_reload_modifies_nothing(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.settings.batch_size = 123
    manager.add_connection(ConnectionSettings(server_host="kept"))
    _canonical(tmp_path).write_text("{broken", encoding="utf-8")

    assert manager.load() is False

    assert manager.settings.batch_size == 123
    assert [c.server_host for c in manager.connections] == ["kept"]


def test_load_replaces_profile_list(tmp_path: Path, write_json) -> None:
    manager = _manager(tmp_path)
    manager.add_connection(ConnectionSettings(server_host="memory-only"))
    write_json(
        _canonical(tmp_path),
        {"imported": True, "connections": [{"serverHost": "a"}, {"serverPort": "bad"}, {"serverHost": "b"}]},
    )

    assert manager.load()

    assert [c.server_host for c in manager.connections] == ["a", "b"]


def test_anonymous_id_stable_across_loads(tmp_path: Path, write_json) -> None:
    manager = _manager(tmp_path)
    first = manager.anonymous_id
    write_json(
        tmp_path / ".3T" / "robo-3t" / "1.4.3" / "robo3t.json",
        {"anonymousID": "66666666-6666-4666-8666-666666666666"},
    )
    data = json.loads(_canonical(tmp_path).read_text(encoding="utf-8"))
    data["anonymousID"] = "77777777-7777-4777-8777-777777777777"
    write_json(_canonical(tmp_path), data)

    assert manager.load()

    assert manager.anonymous_id == first


def test_connection_list_operations(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    a, b, c = (ConnectionSettings(connection_name=n) for n in "abc")
    for conn in (a, b, c):
        manager.add_connection(conn)
    live = manager.connections

    manager.reorder_connections([c, a, b])
    manager.remove_connection(a)
    manager.remove_connection(ConnectionSettings(connection_name="stranger"))

    assert live is manager.connections
    assert [x.connection_name for x in manager.connections] == ["c", "b"]
    assert manager.get_connection_settings_by_uuid(b.uuid) is b
    assert manager.get_connection_settings_by_uuid(a.uuid) is None


def test_imported_connections_count(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.add_connection(ConnectionSettings(imported=True))
    manager.add_connection(ConnectionSettings())
    assert manager.imported_connections_count() == 1


def test_setters_apply_rules(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.settings.set_text_font_point_size(0)
    assert manager.settings.text_font_point_size == -1
    manager.settings.set_shell_timeout_sec(-5)
    assert manager.settings.shell_timeout_sec == 5
    assert manager.add_db_version_connected("4.2") is True
    assert manager.add_db_version_connected("4.2") is False
    manager.add_accepted_eula_version("1.4.4")
    manager.add_accepted_eula_version("1.4.4")
    assert manager.settings.accepted_eula_versions == {"1.4.4"}


def test_save_failure_returns_false(tmp_path: Path) -> None:
    manager = SettingsManager(tmp_path, home=tmp_path, bootstrap=False)
    assert manager.save() is False


def test_non_finite_numbers_fall_back_to_defaults(tmp_path: Path) -> None:
    path = _canonical(tmp_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        '{"imported": true, "batchSize": 1e400, "mongoTimeoutSec": NaN, "viewMode": -1e400}',
        encoding="utf-8",
    )

    manager = _manager(tmp_path)

    assert manager.settings.batch_size == 50
    assert manager.settings.mongo_timeout_sec == 10
    assert manager.settings.view_mode is ViewMode.CUSTOM


def test_sibling_archive_supplies_anonymous_id(tmp_path: Path) -> None:
    archive_path, entry = sibling_archives(tmp_path)[0]
    archive_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr(entry, f"<properties><key>AnonymousID</key>\n<string>{ANON_ID}</string></properties>")

    assert _manager(tmp_path).anonymous_id == ANON_ID
