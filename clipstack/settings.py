import logging
from typing import Optional

from PySide6 import QtCore


logger = logging.getLogger(__name__)

ORGANIZATION = "Clipstack"
APPLICATION = "Clipstack"

MIN_HISTORY_ITEMS = 2
MAX_HISTORY_ITEMS = 50
DEFAULT_HISTORY_ITEMS = 25

DEFAULT_POLL_INTERVAL_MS = 500
MIN_POLL_INTERVAL_MS = 50
MAX_POLL_INTERVAL_MS = 5000

DEFAULT_PASTE_DELAY_MS = 100
MAX_PASTE_DELAY_MS = 2000

DEFAULT_SHOW_HISTORY_HOTKEY = "ctrl+shift+v"
DEFAULT_COPY_WITHOUT_HISTORY_HOTKEY = "ctrl+shift+c"
DEFAULT_PASTE_CURRENT_HOTKEY = "ctrl+shift+b"

_KEY_HISTORY_ENABLED = "history/enabled"
_KEY_MAX_ITEMS = "history/max_items"
_KEY_POLL_INTERVAL = "monitor/poll_interval_ms"
_KEY_PASTE_DELAY = "recall/paste_delay_ms"
_KEY_SHOW_HISTORY = "hotkeys/show_history"
_KEY_COPY_WITHOUT_HISTORY = "hotkeys/copy_without_history"
_KEY_PASTE_CURRENT = "hotkeys/paste_current"

_ALL_KEYS = (
    _KEY_HISTORY_ENABLED,
    _KEY_MAX_ITEMS,
    _KEY_POLL_INTERVAL,
    _KEY_PASTE_DELAY,
    _KEY_SHOW_HISTORY,
    _KEY_COPY_WITHOUT_HISTORY,
    _KEY_PASTE_CURRENT,
)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class Settings(QtCore.QObject):
    """User preferences, read live on every access.

    Numeric values outside their range are clamped on the way in and on the
    way out, so a hand-edited settings file cannot push the core out of range.
    """

    changed = QtCore.Signal()

    def __init__(self, qsettings: Optional[QtCore.QSettings] = None, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self._settings = qsettings or QtCore.QSettings(ORGANIZATION, APPLICATION)

    # -------- history --------
    @property
    def history_enabled(self) -> bool:
        return bool(self._settings.value(_KEY_HISTORY_ENABLED, True, type=bool))

    @history_enabled.setter
    def history_enabled(self, value: bool) -> None:
        self._set(_KEY_HISTORY_ENABLED, bool(value))

    @property
    def max_history_items(self) -> int:
        raw = self._int(_KEY_MAX_ITEMS, DEFAULT_HISTORY_ITEMS)
        return clamp(raw, MIN_HISTORY_ITEMS, MAX_HISTORY_ITEMS)

    @max_history_items.setter
    def max_history_items(self, value: int) -> None:
        self._set(_KEY_MAX_ITEMS, clamp(int(value), MIN_HISTORY_ITEMS, MAX_HISTORY_ITEMS))

    # -------- timing --------
    @property
    def poll_interval_ms(self) -> int:
        raw = self._int(_KEY_POLL_INTERVAL, DEFAULT_POLL_INTERVAL_MS)
        return clamp(raw, MIN_POLL_INTERVAL_MS, MAX_POLL_INTERVAL_MS)

    @poll_interval_ms.setter
    def poll_interval_ms(self, value: int) -> None:
        self._set(_KEY_POLL_INTERVAL, clamp(int(value), MIN_POLL_INTERVAL_MS, MAX_POLL_INTERVAL_MS))

    @property
    def paste_delay_ms(self) -> int:
        return clamp(self._int(_KEY_PASTE_DELAY, DEFAULT_PASTE_DELAY_MS), 0, MAX_PASTE_DELAY_MS)

    @paste_delay_ms.setter
    def paste_delay_ms(self, value: int) -> None:
        self._set(_KEY_PASTE_DELAY, clamp(int(value), 0, MAX_PASTE_DELAY_MS))

    # -------- hotkeys --------
    @property
    def show_history_hotkey(self) -> str:
        return self._str(_KEY_SHOW_HISTORY, DEFAULT_SHOW_HISTORY_HOTKEY)

    @show_history_hotkey.setter
    def show_history_hotkey(self, value: str) -> None:
        self._set(_KEY_SHOW_HISTORY, value.strip().lower())

    @property
    def copy_without_history_hotkey(self) -> str:
        return self._str(_KEY_COPY_WITHOUT_HISTORY, DEFAULT_COPY_WITHOUT_HISTORY_HOTKEY)

    @copy_without_history_hotkey.setter
    def copy_without_history_hotkey(self, value: str) -> None:
        self._set(_KEY_COPY_WITHOUT_HISTORY, value.strip().lower())

    @property
    def paste_current_hotkey(self) -> str:
        return self._str(_KEY_PASTE_CURRENT, DEFAULT_PASTE_CURRENT_HOTKEY)

    @paste_current_hotkey.setter
    def paste_current_hotkey(self, value: str) -> None:
        self._set(_KEY_PASTE_CURRENT, value.strip().lower())

    # -------- persistence --------
    def reset(self) -> None:
        for key in _ALL_KEYS:
            self._settings.remove(key)
        self._settings.sync()
        self.changed.emit()

    def sync(self) -> None:
        self._settings.sync()

    def _set(self, key: str, value) -> None:
        self._settings.setValue(key, value)
        self.changed.emit()

    def _int(self, key: str, default: int) -> int:
        raw = self._settings.value(key, default)
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric setting %s=%r", key, raw)
            return default

    def _str(self, key: str, default: str) -> str:
        raw = self._settings.value(key, default)
        if not isinstance(raw, str) or not raw.strip():
            return default
        return raw
