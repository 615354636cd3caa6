import logging
from typing import Optional, Protocol

from .clipboard import ClipboardBackend
from .entry import Entry
from .history import HistoryStore
from .keys import Keystroke, KeystrokeSender
from .monitor import SuppressionFlag
from .scheduler import ScheduledCall, Scheduler
from .settings import DEFAULT_PASTE_DELAY_MS


logger = logging.getLogger(__name__)


class RecallSettings(Protocol):
    paste_delay_ms: int


class RecallController:
    """Puts history entries back on the clipboard and pastes them.

    Every path arms the suppression flag before touching the clipboard or
    sending input, so the monitor never records the result as new history.
    Only one delayed paste is pending at a time; a newer recall cancels it.
    """

    def __init__(
        self,
        store: HistoryStore,
        clipboard: ClipboardBackend,
        keys: KeystrokeSender,
        scheduler: Scheduler,
        suppression: SuppressionFlag,
        settings: Optional[RecallSettings] = None,
    ):
        self._store = store
        self._clipboard = clipboard
        self._keys = keys
        self._scheduler = scheduler
        self._suppression = suppression
        self._settings = settings
        self._pending: Optional[ScheduledCall] = None

    @property
    def paste_delay_ms(self) -> int:
        if self._settings is None:
            return DEFAULT_PASTE_DELAY_MS
        return int(self._settings.paste_delay_ms)

    @property
    def paste_pending(self) -> bool:
        return self._pending is not None and self._pending.active

    def apply_and_paste(self, index: int) -> bool:
        # the caller's snapshot may be stale, so re-check against the live store
        if not 0 <= index < len(self._store):
            logger.debug("Ignoring recall of index %d (history has %d)", index, len(self._store))
            return False
        self._apply(self._store[index])
        return True

    def apply_current_and_paste(self) -> bool:
        entry = self._store.current or self._store.head()
        if entry is None:
            return False
        self._apply(entry)
        return True

    def copy_foreign_selection_without_recording(self) -> None:
        self._suppression.arm()
        self._keys.send_keystroke(Keystroke.COPY)

    def cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and pending.active:
            pending.cancel()
            logger.debug("Cancelled pending paste")

    def _apply(self, entry: Entry) -> None:
        self.cancel_pending()
        self._suppression.arm()
        self._clipboard.write(entry)
        self._store.current = entry
        self._pending = self._scheduler.call_later(self.paste_delay_ms, self._paste)

    def _paste(self) -> None:
        self._pending = None
        self._keys.send_keystroke(Keystroke.PASTE)
