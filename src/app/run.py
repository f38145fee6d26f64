from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Sequence

from PySide6.QtCore import QCommandLineOption, QCommandLineParser

from src.lib import paths
from src.lib.secret_cipher import FernetPasswordCipher
from src.logging.config import apply_debug_mode, configure_logging
from src.logging.gui_bridge import PanelLogRecord, build_panel_handler
from src.services.settings_store import SettingsManager

_logger = logging.getLogger(__name__)


def build_parser() -> tuple[QCommandLineParser, QCommandLineOption]:
    parser = QCommandLineParser()
    parser.setApplicationDescription("Robo 3T - MongoDB GUI")
    parser.addHelpOption()
    config_file_option = QCommandLineOption(
        ["c", "config-file"],
        "Load database connections from the specified configuration file.",
        "file",
    )
    parser.addOption(config_file_option)
    return parser, config_file_option


def default_settings_manager() -> SettingsManager:
    """Settings store for the current home, with profile secrets encrypted on disk."""
    return SettingsManager(cipher=FernetPasswordCipher(paths.cipher_key_path()))


def bootstrap_settings(
    argv: Optional[Sequence[str]] = None,
    *,
    manager_factory: Optional[Callable[[], SettingsManager]] = None,
    panel_emitter: Optional[Callable[[PanelLogRecord], None]] = None,
) -> SettingsManager:
    """Create the settings store for this process and apply command line options.

    Leaves ``programExitedNormally`` False on disk until ``mark_clean_exit``
    runs, so the next start can tell whether this run crashed.
    """
    args = list(argv) if argv is not None else list(sys.argv)
    panel_factory = (lambda: build_panel_handler(panel_emitter)) if panel_emitter else None
    configure_logging(panel_factory, log_file=paths.config_dir() / "robo3t.log")

    parser, config_file_option = build_parser()
    if not parser.parse(args):
        _logger.warning("Ignoring invalid command line", extra={"reason": parser.errorText()})

    settings = (manager_factory or default_settings_manager)()
    apply_debug_mode(settings.settings.debug_mode)

    if parser.isSet(config_file_option):
        config_file_path = parser.value(config_file_option)
        if not settings.load_connections_from_file(config_file_path):
            _logger.warning("Failed to load connections from config file", extra={"path": config_file_path})

    settings.settings.program_exited_normally = False
    settings.save()
    return settings


def mark_clean_exit(settings: SettingsManager) -> bool:
    settings.settings.program_exited_normally = True
    return settings.save()


__all__ = ["build_parser", "default_settings_manager", "bootstrap_settings", "mark_clean_exit"]
