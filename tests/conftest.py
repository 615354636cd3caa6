import os

# must be set before any QGuiApplication is created
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from typing import Callable, List, Optional

import pytest
from PySide6 import QtCore, QtGui

from clipstack.entry import HTML_FORMAT, ClipboardSnapshot, Entry, EntryKind
from clipstack.errors import ClipboardReadError, StorageError
from clipstack.history import HistoryStore
from clipstack.monitor import SuppressionFlag
from clipstack.settings import Settings


class FakeClipboard:
    """In-memory clipboard with a change counter, like the OS one."""

    def __init__(self, suppression: Optional[SuppressionFlag] = None):
        self.count = 0
        self.content: Optional[ClipboardSnapshot] = None
        self.writes: List[Entry] = []
        self.armed_at_write: List[bool] = []
        self.reads = 0
        self.fail_reads = 0
        self._suppression = suppression

    # -------- test helpers --------
    def copy_text(self, text: str) -> None:
        self.content = ClipboardSnapshot(text=text)
        self.count += 1

    def copy(self, snapshot: ClipboardSnapshot) -> None:
        self.content = snapshot
        self.count += 1

    # -------- backend --------
    def change_count(self) -> int:
        return self.count

    def read(self) -> Optional[ClipboardSnapshot]:
        self.reads += 1
        if self.fail_reads:
            self.fail_reads -= 1
            raise ClipboardReadError("content vanished")
        return self.content

    def write(self, entry: Entry) -> None:
        if self._suppression is not None:
            self.armed_at_write.append(self._suppression.armed)
        self.writes.append(entry)
        self.content = snapshot_of(entry)
        self.count += 1


def snapshot_of(entry: Entry) -> ClipboardSnapshot:
    if entry.kind is EntryKind.TEXT:
        return ClipboardSnapshot(text=entry.text)
    if entry.kind is EntryKind.RICH_TEXT:
        return ClipboardSnapshot(rich_data=entry.data, rich_format=entry.data_format, text=entry.text)
    if entry.kind is EntryKind.IMAGE:
        return ClipboardSnapshot(image_png=entry.data)
    return ClipboardSnapshot(paths=entry.paths)


class FakeKeys:
    def __init__(self, suppression: Optional[SuppressionFlag] = None):
        self.sent = []
        self.armed_at_send: List[bool] = []
        self._suppression = suppression

    def send_keystroke(self, key) -> None:
        if self._suppression is not None:
            self.armed_at_send.append(self._suppression.armed)
        self.sent.append(key)


class FakeCall:
    def __init__(self, due: int, callback: Callable[[], None], interval: Optional[int] = None):
        self.due = due
        self.callback = callback
        self.interval = interval
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not self.cancelled and (self.interval is not None or not self.fired)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by ``advance(ms)`` instead of a real clock."""

    def __init__(self) -> None:
        self.now = 0
        self.calls: List[FakeCall] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeCall:
        call = FakeCall(self.now + delay_ms, callback)
        self.calls.append(call)
        return call

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> FakeCall:
        call = FakeCall(self.now + interval_ms, callback, interval=interval_ms)
        self.calls.append(call)
        return call

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [c for c in self.calls if c.active and c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self.now = call.due
            if call.interval is None:
                call.fired = True
            else:
                call.due += call.interval
            call.callback()
        self.now = target

    @property
    def pending(self) -> List[FakeCall]:
        return [c for c in self.calls if c.active]


class MemoryStorage:
    def __init__(self, data: Optional[bytes] = None):
        self.data = data
        self.saves = 0
        self.fail_save = False
        self.fail_load = False

    def load(self) -> Optional[bytes]:
        if self.fail_load:
            raise StorageError("disk unreadable", OSError(5, "Input/output error"))
        return self.data

    def save(self, data: bytes) -> None:
        if self.fail_save:
            raise StorageError("disk full", OSError(28, "No space left on device"))
        self.saves += 1
        self.data = data


# -------- fixtures --------
@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QtGui.QGuiApplication.instance() or QtGui.QGuiApplication([])
    yield app
    # release clipboard-owned mime data while the app is still alive
    app.clipboard().clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    qsettings = QtCore.QSettings(str(tmp_path / "settings.ini"), QtCore.QSettings.Format.IniFormat)
    return Settings(qsettings)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(settings, storage) -> HistoryStore:
    return HistoryStore(settings, storage)


@pytest.fixture
def suppression() -> SuppressionFlag:
    return SuppressionFlag()


@pytest.fixture
def clipboard(suppression) -> FakeClipboard:
    return FakeClipboard(suppression)


@pytest.fixture
def keys(suppression) -> FakeKeys:
    return FakeKeys(suppression)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sample_entries() -> List[Entry]:
    png = b"\x89PNG\r\n\x1a\n" + bytes(range(256))
    return [
        Entry.plain("hello world"),
        Entry.rich(b"<b>bold</b>", HTML_FORMAT, "bold"),
        Entry.image(png),
        Entry.files(["/home/user/report.pdf", "/home/user/notes.txt"]),
    ]
