"""
Clipboard polling.

``ClipboardMonitor.tick`` runs on a fixed interval and turns genuine external
clipboard changes into history entries. Writes made by clipstack itself are
recognised through ``SuppressionFlag``: whoever is about to change the
clipboard (or make another app change it) arms the flag first, and the next
tick that observes a changed counter consumes it instead of capturing.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .clipboard import ClipboardBackend
from .entry import Entry, capture
from .errors import ClipboardReadError
from .history import HistoryStore
from .scheduler import ScheduledCall, Scheduler
from .settings import DEFAULT_POLL_INTERVAL_MS


logger = logging.getLogger(__name__)


class MonitorSettings(Protocol):
    history_enabled: bool
    poll_interval_ms: int


class SuppressionFlag:
    """One-shot "the next clipboard change is ours" marker.

    Single writer (the recall controller, via ``arm``), single reader (the
    monitor, via ``consume``). ``arm`` must happen before the clipboard write
    or synthetic keystroke it covers.
    """

    def __init__(self) -> None:
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        self._armed = True

    def consume(self) -> bool:
        was_armed, self._armed = self._armed, False
        return was_armed


@dataclass
class MonitorState:
    last_observed_version: int = 0


class ClipboardMonitor:
    def __init__(
        self,
        clipboard: ClipboardBackend,
        store: HistoryStore,
        settings: MonitorSettings,
        suppression: SuppressionFlag,
        scheduler: Optional[Scheduler] = None,
    ):
        self._clipboard = clipboard
        self._store = store
        self._settings = settings
        self._suppression = suppression
        self._scheduler = scheduler
        self._timer: Optional[ScheduledCall] = None
        self._interval: Optional[int] = None
        self.state = MonitorState(last_observed_version=clipboard.change_count())

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.active

    @property
    def interval_ms(self) -> Optional[int]:
        """Polling interval of the running timer, None when stopped."""
        return self._interval if self.running else None

    def start(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("ClipboardMonitor needs a scheduler to poll")
        self.stop()
        interval = getattr(self._settings, "poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
        self._timer = self._scheduler.call_every(interval, self.tick)
        self._interval = interval
        logger.info("Clipboard monitor polling every %d ms", interval)

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            self._interval = None
            logger.debug("Clipboard monitor stopped")

    def tick(self) -> Optional[Entry]:
        """One poll. Returns the entry recorded this tick, if any."""
        version = self._clipboard.change_count()
        if version == self.state.last_observed_version:
            return None
        self.state.last_observed_version = version

        if self._suppression.consume():
            logger.debug("Skipping self-induced clipboard change %d", version)
            return None

        if not self._settings.history_enabled:
            return None

        try:
            entry = capture(self._clipboard.read())
        except ClipboardReadError as e:
            logger.debug("Clipboard read missed: %s", e)
            return None
        if entry is None:
            return None

        head = self._store.head()
        if head is not None and head.same_content(entry):
            return None

        self._store.record(entry)
        self._store.current = entry
        logger.debug("Captured %s entry %s", entry.kind.value, entry.id)
        return entry
