"""Clipboard history: capture, dedupe, search and re-paste past clipboard entries."""

from .entry import ClipboardSnapshot, Entry, EntryKind, capture
from .history import HistoryStore
from .monitor import ClipboardMonitor, SuppressionFlag
from .recall import RecallController
from .session import SelectionSession, SessionState

__version__ = "0.1.0"

__all__ = [
    "ClipboardMonitor",
    "ClipboardSnapshot",
    "Entry",
    "EntryKind",
    "HistoryStore",
    "RecallController",
    "SelectionSession",
    "SessionState",
    "SuppressionFlag",
    "capture",
]
