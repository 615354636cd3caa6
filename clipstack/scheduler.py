from typing import Callable, Optional, Protocol

from PySide6 import QtCore


class ScheduledCall(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall: ...

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledCall: ...


class QtScheduledCall:
    """Handle over a ``QTimer``. A fired one-shot timer is released by Qt."""

    def __init__(self, timer: QtCore.QTimer, callback: Callable[[], None]):
        self._timer: Optional[QtCore.QTimer] = timer
        self._callback = callback
        timer.timeout.connect(self._on_timeout)

    def _on_timeout(self) -> None:
        timer = self._timer
        if timer is not None and timer.isSingleShot():
            self._timer = None
            timer.deleteLater()
        self._callback()

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()
            timer.deleteLater()


class QtScheduler:
    """Timers on the Qt main thread; every callback runs on the control context.

    Callers must keep the returned handle until the call fired or was
    cancelled.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None):
        self._parent = parent

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QtScheduledCall:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))
        call = QtScheduledCall(timer, callback)
        timer.start()
        return call

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> QtScheduledCall:
        timer = QtCore.QTimer(self._parent)
        timer.setInterval(max(1, int(interval_ms)))
        call = QtScheduledCall(timer, callback)
        timer.start()
        return call
