import logging
import os
import signal
import sys
from typing import Callable, Dict, List, Optional, Protocol

from PySide6 import QtCore, QtWidgets

from .clipboard import QtClipboard
from .history import HistoryStore
from .keys import GlobalHotkeyManager, KeyboardInput
from .log import configure_logging
from .monitor import ClipboardMonitor, SuppressionFlag
from .popup import HistoryPopup
from .recall import RecallController
from .scheduler import QtScheduler, ScheduledCall, Scheduler
from .session import SelectionSession
from .settings import Settings
from .storage import HistoryFile


logger = logging.getLogger(__name__)

FOCUS_RESTORE_DELAY_MS = 150
SMOKE_TEST_AUTOQUIT_MS = 800

SHOW_HISTORY = "show_history"
COPY_WITHOUT_HISTORY = "copy_without_history"
PASTE_CURRENT = "paste_current"


class Overlay(Protocol):
    def present(self, session: SelectionSession, history_enabled: bool = True) -> None: ...

    def dismiss(self) -> None: ...


class HotkeyBridge(QtCore.QObject):
    # keyboard callbacks are not on the Qt thread; a queued signal moves them there
    triggered = QtCore.Signal(str)


class Coordinator:
    """Turns hotkeys into capture/recall/paste actions on the main thread."""

    def __init__(
        self,
        store: HistoryStore,
        recall: RecallController,
        settings: Settings,
        scheduler: Scheduler,
        overlay: Overlay,
        monitor: Optional[ClipboardMonitor] = None,
    ):
        self._store = store
        self._recall = recall
        self._settings = settings
        self._scheduler = scheduler
        self._overlay = overlay
        self._monitor = monitor
        self._hotkeys: Optional[GlobalHotkeyManager] = None
        self._session: Optional[SelectionSession] = None
        self._pending: Optional[ScheduledCall] = None
        self._actions: Dict[str, Callable[[], None]] = {
            SHOW_HISTORY: self.show_history,
            COPY_WITHOUT_HISTORY: self.copy_without_history,
            PASTE_CURRENT: self.paste_current,
        }

    @property
    def session(self) -> Optional[SelectionSession]:
        return self._session

    # -------- hotkeys --------
    def register_hotkeys(self, hotkeys: GlobalHotkeyManager, notify: Callable[[str], None]) -> List[Exception]:
        """Bind the configured combos; ``notify(name)`` must hop to the main thread."""
        self._hotkeys = hotkeys
        combos = {
            SHOW_HISTORY: self._settings.show_history_hotkey,
            COPY_WITHOUT_HISTORY: self._settings.copy_without_history_hotkey,
            PASTE_CURRENT: self._settings.paste_current_hotkey,
        }
        errors: List[Exception] = []
        for name, combo in combos.items():
            err = hotkeys.register(name, combo, lambda name=name: notify(name))
            if err is not None:
                errors.append(err)
        return errors

    def dispatch(self, name: str) -> None:
        action = self._actions.get(name)
        if action is None:
            logger.warning("Unknown hotkey action %r", name)
            return
        action()

    # -------- actions --------
    def show_history(self) -> None:
        self._cancel_pending()
        previous = self._session
        if previous is not None and not previous.closed:
            previous.cancel()

        session = SelectionSession(self._store.snapshot(), on_finish=self._on_session_finished)
        self._session = session
        self._overlay.present(session, self._settings.history_enabled)

    def copy_without_history(self) -> None:
        self._recall.copy_foreign_selection_without_recording()

    def paste_current(self) -> None:
        self._recall.apply_current_and_paste()

    def toggle_history(self) -> bool:
        enabled = not self._settings.history_enabled
        self._settings.history_enabled = enabled
        logger.info("Clipboard history %s", "enabled" if enabled else "disabled")
        return enabled

    def clear_history(self) -> None:
        self._recall.cancel_pending()
        self._store.clear()
        logger.info("Clipboard history cleared")

    def _on_session_finished(self, index: Optional[int]) -> None:
        self._overlay.dismiss()
        if index is None:
            self._recall.cancel_pending()
            return
        # let the previously focused app take focus back before pasting into it
        self._pending = self._scheduler.call_later(FOCUS_RESTORE_DELAY_MS, lambda: self._recall_selected(index))

    def _recall_selected(self, index: int) -> None:
        self._pending = None
        self._recall.apply_and_paste(index)

    def _cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and pending.active:
            pending.cancel()
        self._recall.cancel_pending()

    # -------- lifecycle --------
    def start(self) -> None:
        if self._monitor is not None:
            self._monitor.start()

    def restart_monitor(self) -> None:
        """Re-arm polling only when the configured interval moved."""
        monitor = self._monitor
        if monitor is None or not monitor.running:
            return
        if monitor.interval_ms != self._settings.poll_interval_ms:
            monitor.start()

    def shutdown(self) -> None:
        self._cancel_pending()
        if self._session is not None and not self._session.closed:
            self._session.cancel()
        if self._monitor is not None:
            self._monitor.stop()
        self._store.save()
        self._settings.sync()
        if self._hotkeys is not None:
            self._hotkeys.shutdown()
        logger.info("Clipstack shut down")


def main() -> None:
    configure_logging()
    app = QtWidgets.QApplication(sys.argv)
    app.setApplicationName("Clipstack")
    app.setQuitOnLastWindowClosed(False)
    smoke = os.getenv("CLIPSTACK_SMOKE_TEST") == "1"

    settings = Settings(parent=app)
    store = HistoryStore(settings, HistoryFile(), parent=app)
    store.load()

    clipboard = QtClipboard(parent=app)
    scheduler = QtScheduler(app)
    suppression = SuppressionFlag()
    monitor = ClipboardMonitor(clipboard, store, settings, suppression, scheduler)
    recall = RecallController(store, clipboard, KeyboardInput(), scheduler, suppression, settings)
    popup = HistoryPopup()
    coordinator = Coordinator(store, recall, settings, scheduler, popup, monitor)
    settings.changed.connect(coordinator.restart_monitor)

    bridge = HotkeyBridge(app)
    bridge.triggered.connect(coordinator.dispatch, QtCore.Qt.ConnectionType.QueuedConnection)
    if not smoke:
        for err in coordinator.register_hotkeys(GlobalHotkeyManager(), bridge.triggered.emit):
            logger.error("Hotkey unavailable: %s", err)

    coordinator.start()
    app.aboutToQuit.connect(coordinator.shutdown)
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # let the interpreter run now and then so SIGINT is noticed
    heartbeat = QtCore.QTimer(app)
    heartbeat.start(250)
    heartbeat.timeout.connect(lambda: None)

    if smoke:
        QtCore.QTimer.singleShot(SMOKE_TEST_AUTOQUIT_MS, app.quit)
    logger.info("Clipstack running with %d history entries", len(store))
    app.exec()


if __name__ == "__main__":
    main()
