"""
Selection session: filter, navigate and pick one entry of a history snapshot.

The session works on a copy of the history taken when it opens; captures
that happen while it is open do not move rows under the user. Rows are
addressed by their position in the filtered view, results by their index in
the original snapshot, which is what ``RecallController.apply_and_paste``
expects.
"""

import enum
import logging
from contextlib import ExitStack
from typing import Callable, List, Optional, Sequence

from .entry import Entry


logger = logging.getLogger(__name__)

QUICK_PICK_MAX = 9


class SessionState(enum.Enum):
    OPEN = "open"
    FILTERING = "filtering"
    SELECTED = "selected"
    CANCELLED = "cancelled"


class SelectionSession:
    def __init__(
        self,
        entries: Sequence[Entry],
        on_finish: Optional[Callable[[Optional[int]], None]] = None,
    ):
        self._entries: List[Entry] = list(entries)
        self._on_finish = on_finish
        self._filter = ""
        self._view: List[int] = list(range(len(self._entries)))
        self._highlight: Optional[int] = 0 if self._view else None
        self._state = SessionState.OPEN
        self._selected: Optional[int] = None
        self._resources = ExitStack()

    # -------- context management --------
    def __enter__(self) -> "SelectionSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.closed:
            self.cancel()
        self._resources.close()

    def attach(self, release: Callable[[], None]) -> None:
        """Register cleanup for something acquired for this session (listeners, hooks)."""
        if self.closed:
            release()
            return
        self._resources.callback(release)

    # -------- read access --------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state in (SessionState.SELECTED, SessionState.CANCELLED)

    @property
    def filter_text(self) -> str:
        return self._filter

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @property
    def visible(self) -> List[Entry]:
        return [self._entries[i] for i in self._view]

    @property
    def highlight(self) -> Optional[int]:
        """Highlighted row in the filtered view, None when the view is empty."""
        return self._highlight

    @property
    def selected_index(self) -> Optional[int]:
        """Index into the original snapshot once the session closed as SELECTED."""
        return self._selected

    def original_index(self, row: int) -> Optional[int]:
        if 0 <= row < len(self._view):
            return self._view[row]
        return None

    # -------- transitions --------
    def set_filter(self, text: str) -> None:
        if self.closed:
            return
        self._filter = text
        needle = text.lower()
        if needle:
            self._view = [i for i, it in enumerate(self._entries) if needle in it.searchable_text().lower()]
        else:
            self._view = list(range(len(self._entries)))
        self._highlight = 0 if self._view else None
        self._state = SessionState.FILTERING

    def move_down(self) -> None:
        if self.closed or self._highlight is None:
            return
        self._highlight = min(self._highlight + 1, len(self._view) - 1)

    def move_up(self) -> None:
        if self.closed or self._highlight is None:
            return
        self._highlight = max(self._highlight - 1, 0)

    def highlight_row(self, row: int) -> None:
        if self.closed or not 0 <= row < len(self._view):
            return
        self._highlight = row

    def confirm(self) -> Optional[int]:
        if self._highlight is None:
            return None
        return self.activate(self._highlight)

    def activate(self, row: int) -> Optional[int]:
        if self.closed:
            return None
        index = self.original_index(row)
        if index is None:
            return None
        self._finish(SessionState.SELECTED, index)
        return index

    def press_digit(self, digit: int) -> Optional[int]:
        """Quick pick: digit N selects visible row N (1-based, 1-9 only)."""
        if not 1 <= digit <= QUICK_PICK_MAX:
            return None
        return self.activate(digit - 1)

    def cancel(self) -> None:
        if self.closed:
            return
        self._finish(SessionState.CANCELLED, None)

    def focus_lost(self) -> None:
        self.cancel()

    def _finish(self, state: SessionState, index: Optional[int]) -> None:
        self._state = state
        self._selected = index
        try:
            self._resources.close()
        finally:
            logger.debug("Selection session closed: %s %s", state.value, index)
            if self._on_finish is not None:
                self._on_finish(index)
