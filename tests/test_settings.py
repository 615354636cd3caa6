import logging

import pytest
from PySide6 import QtCore

from clipstack.settings import Settings


def make_settings(path):
    return Settings(QtCore.QSettings(str(path), QtCore.QSettings.Format.IniFormat))


def test_defaults(settings):
    assert settings.history_enabled is True
    assert settings.max_history_items == 25
    assert settings.poll_interval_ms == 500
    assert settings.paste_delay_ms == 100
    assert settings.show_history_hotkey == "ctrl+shift+v"
    assert settings.copy_without_history_hotkey == "ctrl+shift+c"
    assert settings.paste_current_hotkey == "ctrl+shift+b"


@pytest.mark.parametrize("value, expected", [(1, 2), (2, 2), (30, 30), (50, 50), (51, 50), (-7, 2)])
def test_history_size_is_clamped(settings, value, expected):
    settings.max_history_items = value
    assert settings.max_history_items == expected


def test_timing_values_are_clamped(settings):
    settings.poll_interval_ms = 1
    settings.paste_delay_ms = -5
    assert settings.poll_interval_ms == 50
    assert settings.paste_delay_ms == 0
    settings.poll_interval_ms = 60_000
    settings.paste_delay_ms = 60_000
    assert settings.poll_interval_ms == 5000
    assert settings.paste_delay_ms == 2000


def test_values_persist_across_instances(tmp_path):
    path = tmp_path / "settings.ini"
    first = make_settings(path)
    first.history_enabled = False
    first.max_history_items = 10
    first.show_history_hotkey = " Ctrl+Alt+H "
    first.sync()

    second = make_settings(path)
    assert second.history_enabled is False
    assert second.max_history_items == 10
    assert second.show_history_hotkey == "ctrl+alt+h"


def test_hand_edited_values_are_clamped_on_read(tmp_path):
    path = tmp_path / "settings.ini"
    path.write_text("[history]\nmax_items=400\n[monitor]\npoll_interval_ms=3\n")
    settings = make_settings(path)
    assert settings.max_history_items == 50
    assert settings.poll_interval_ms == 50


def test_non_numeric_value_falls_back_to_default(tmp_path, caplog):
    path = tmp_path / "settings.ini"
    path.write_text("[history]\nmax_items=lots\n")
    settings = make_settings(path)
    with caplog.at_level(logging.WARNING, logger="clipstack.settings"):
        assert settings.max_history_items == 25
    assert "non-numeric" in caplog.text


def test_blank_hotkey_falls_back_to_default(settings):
    settings.paste_current_hotkey = "   "
    assert settings.paste_current_hotkey == "ctrl+shift+b"


def test_reset_restores_defaults(settings):
    settings.history_enabled = False
    settings.max_history_items = 3
    settings.reset()
    assert settings.history_enabled is True
    assert settings.max_history_items == 25


def test_changes_are_signalled(settings):
    emitted = []
    settings.changed.connect(lambda: emitted.append(True))
    settings.history_enabled = False
    settings.paste_delay_ms = 250
    settings.reset()
    assert emitted == [True, True, True]
