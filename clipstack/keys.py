import enum
import logging
import sys
from typing import Callable, Dict, Optional, Protocol

import keyboard


logger = logging.getLogger(__name__)


class Keystroke(enum.Enum):
    COPY = "copy"
    PASTE = "paste"


_MODIFIER = "command" if sys.platform == "darwin" else "ctrl"
KEYSTROKE_COMBOS: Dict[Keystroke, str] = {
    Keystroke.COPY: f"{_MODIFIER}+c",
    Keystroke.PASTE: f"{_MODIFIER}+v",
}


class KeystrokeSender(Protocol):
    def send_keystroke(self, key: Keystroke) -> None: ...


class KeyboardInput:
    """Synthetic copy/paste into the foreground application."""

    def send_keystroke(self, key: Keystroke) -> None:
        combo = KEYSTROKE_COMBOS[key]
        try:
            keyboard.send(combo)
        except Exception:
            # the keyboard backend raises bare Exception/OSError/ImportError
            # depending on platform and permissions
            logger.warning("Synthetic %s (%s) failed; the item is on the clipboard", key.value, combo, exc_info=True)


class GlobalHotkeyManager:
    def __init__(self) -> None:
        self._handles: Dict[str, object] = {}

    def register(self, name: str, combo: str, callback: Callable[[], None]) -> Optional[Exception]:
        """Bind ``combo`` to ``callback``; returns the error instead of raising."""
        self.unregister(name)
        try:
            self._handles[name] = keyboard.add_hotkey(combo, callback)
            logger.info("Registered hotkey %s for %s", combo, name)
            return None
        except Exception as e:
            logger.warning("Failed to register hotkey %s for %s: %s", combo, name, e)
            return e

    def unregister(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        if handle is None:
            return
        try:
            keyboard.remove_hotkey(handle)
        except (KeyError, ValueError):
            logger.debug("Hotkey %s was already gone", name)

    def shutdown(self) -> None:
        if not self._handles:
            return
        self._handles.clear()
        try:
            keyboard.unhook_all_hotkeys()
        except Exception:
            logger.debug("Could not unhook hotkeys on shutdown", exc_info=True)
