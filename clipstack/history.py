import logging
from typing import List, Optional, Protocol

from PySide6 import QtCore

from .entry import Entry
from .errors import StorageError
from .settings import DEFAULT_HISTORY_ITEMS, MAX_HISTORY_ITEMS, MIN_HISTORY_ITEMS, clamp
from .storage import decode_entries, encode_entries


logger = logging.getLogger(__name__)


class HistoryStorage(Protocol):
    def load(self) -> Optional[bytes]: ...

    def save(self, data: bytes) -> None: ...


class CapacitySource(Protocol):
    max_history_items: int


class HistoryStore(QtCore.QObject):
    """Newest-first, deduplicated, bounded clipboard history.

    Only ``record`` and ``clear`` mutate the sequence. Capacity is read from
    ``settings`` at each mutation, so a lowered limit takes effect on the next
    capture instead of trimming history the moment it changes.
    """

    changed = QtCore.Signal()

    def __init__(
        self,
        settings: Optional[CapacitySource] = None,
        storage: Optional[HistoryStorage] = None,
        parent: Optional[QtCore.QObject] = None,
    ):
        super().__init__(parent)
        self._settings = settings
        self._storage = storage
        self._items: List[Entry] = []
        self._current: Optional[Entry] = None

    # -------- read access --------
    def snapshot(self) -> List[Entry]:
        return list(self._items)

    def head(self) -> Optional[Entry]:
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Entry:
        return self._items[index]

    @property
    def max_items(self) -> int:
        if self._settings is None:
            return DEFAULT_HISTORY_ITEMS
        return clamp(int(self._settings.max_history_items), MIN_HISTORY_ITEMS, MAX_HISTORY_ITEMS)

    @property
    def current(self) -> Optional[Entry]:
        """Entry most recently put on the clipboard, by capture or by recall."""
        return self._current

    @current.setter
    def current(self, entry: Optional[Entry]) -> None:
        self._current = entry

    # -------- mutation --------
    def record(self, entry: Entry) -> bool:
        head = self.head()
        if head is not None and head.same_content(entry):
            return False

        self._items = [it for it in self._items if not it.same_content(entry)]
        self._items.insert(0, entry)
        del self._items[self.max_items:]

        self.save()
        self.changed.emit()
        return True

    def clear(self) -> None:
        self._items = []
        self._current = None
        self.save()
        self.changed.emit()

    # -------- persistence --------
    def persist(self) -> bytes:
        return encode_entries(self._items)

    def restore(self, data: Optional[bytes]) -> bool:
        """Replace the sequence with a saved one. Bad or missing data empties it."""
        items: List[Entry] = []
        for entry in decode_entries(data):
            if any(it.same_content(entry) for it in items):
                continue
            items.append(entry)
        del items[self.max_items:]

        self._items = items
        self._current = self.head()
        self.changed.emit()
        return bool(items)

    def load(self) -> bool:
        if self._storage is None:
            return False
        try:
            data = self._storage.load()
        except StorageError:
            logger.warning("Could not load clipboard history; starting empty", exc_info=True)
            data = None
        restored = self.restore(data)
        logger.info("Restored %d clipboard history entries", len(self._items))
        return restored

    def save(self) -> bool:
        if self._storage is None:
            return False
        try:
            data = self.persist()
        except (TypeError, ValueError):
            logger.warning("Could not encode clipboard history; keeping it in memory", exc_info=True)
            return False
        try:
            self._storage.save(data)
        except StorageError:
            logger.warning("Could not save clipboard history; keeping it in memory", exc_info=True)
            return False
        return True
