import enum
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from PySide6 import QtGui


DISPLAY_MAX_CHARS = 50
ELLIPSIS = "..."
IMAGE_LABEL = "📷 Image"
FILES_ICON = "📁"
RICH_TEXT_PLACEHOLDER = "RTF Content"

RTF_FORMAT = "text/rtf"
HTML_FORMAT = "text/html"

_RTF_HEX = re.compile(r"\\'([0-9a-fA-F]{2})")
_RTF_PAR = re.compile(r"\\(par|line)\b ?")
_RTF_DESTINATION = re.compile(r"\{\\\*[^{}]*\}")
_RTF_FONT_TABLE = re.compile(r"\{\\(fonttbl|colortbl|stylesheet|info)\b(?:[^{}]|\{[^{}]*\})*\}")
_RTF_CONTROL = re.compile(r"\\[a-zA-Z]+-?\d* ?")


class EntryKind(str, enum.Enum):
    TEXT = "text"
    RICH_TEXT = "rich_text"
    IMAGE = "image"
    FILES = "files"


@dataclass(frozen=True)
class ClipboardSnapshot:
    """Everything one clipboard read exposed, before picking a representation.

    ``image_png`` is already the canonical PNG encoding; a reader that failed
    to encode the image leaves it ``None``.
    """

    paths: Tuple[str, ...] = ()
    rich_data: Optional[bytes] = None
    rich_format: Optional[str] = None
    image_png: Optional[bytes] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class Entry:
    id: str
    kind: EntryKind
    created_at: float  # unix seconds
    text: Optional[str] = None
    data: Optional[bytes] = None
    data_format: Optional[str] = None
    paths: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", EntryKind(self.kind))
        object.__setattr__(self, "paths", tuple(self.paths))
        kind = self.kind
        if kind is EntryKind.TEXT:
            ok = isinstance(self.text, str) and self.data is None and not self.paths
        elif kind is EntryKind.RICH_TEXT:
            ok = (
                isinstance(self.data, bytes)
                and isinstance(self.text, str)
                and bool(self.data_format)
                and not self.paths
            )
        elif kind is EntryKind.IMAGE:
            ok = isinstance(self.data, bytes) and bool(self.data) and self.text is None and not self.paths
        elif kind is EntryKind.FILES:
            ok = bool(self.paths) and all(isinstance(p, str) for p in self.paths) and self.data is None
        else:
            raise ValueError(f"unknown entry kind: {kind!r}")
        if not ok:
            raise ValueError(f"payload does not match kind {kind.value!r}")

    # -------- constructors --------
    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    @classmethod
    def plain(cls, text: str) -> "Entry":
        return cls(id=cls._new_id(), kind=EntryKind.TEXT, created_at=time.time(), text=text)

    @classmethod
    def rich(cls, data: bytes, data_format: str, text: str) -> "Entry":
        return cls(
            id=cls._new_id(),
            kind=EntryKind.RICH_TEXT,
            created_at=time.time(),
            text=text,
            data=data,
            data_format=data_format,
        )

    @classmethod
    def image(cls, png: bytes) -> "Entry":
        return cls(id=cls._new_id(), kind=EntryKind.IMAGE, created_at=time.time(), data=png)

    @classmethod
    def files(cls, paths: Sequence[str]) -> "Entry":
        return cls(id=cls._new_id(), kind=EntryKind.FILES, created_at=time.time(), paths=tuple(paths))

    # -------- comparison --------
    def same_content(self, other: "Entry") -> bool:
        """Kind-gated payload equality; ids and timestamps are ignored."""
        if self.kind is not other.kind:
            return False
        kind = self.kind
        if kind is EntryKind.TEXT:
            return self.text == other.text
        if kind is EntryKind.RICH_TEXT or kind is EntryKind.IMAGE:
            return self.data == other.data
        if kind is EntryKind.FILES:
            return self.paths == other.paths
        raise ValueError(f"unknown entry kind: {kind!r}")

    # -------- display --------
    def display_label(self, max_len: int = DISPLAY_MAX_CHARS) -> str:
        kind = self.kind
        if kind is EntryKind.TEXT:
            return _truncate((self.text or "").strip(), max_len)
        if kind is EntryKind.RICH_TEXT:
            return _truncate((self.text or RICH_TEXT_PLACEHOLDER).strip(), max_len)
        if kind is EntryKind.IMAGE:
            return IMAGE_LABEL
        if kind is EntryKind.FILES:
            name = _file_name(self.paths[0])
            if len(self.paths) > 1:
                return f"{FILES_ICON} {name} (+{len(self.paths) - 1} more)"
            return f"{FILES_ICON} {name}"
        raise ValueError(f"unknown entry kind: {kind!r}")

    def searchable_text(self) -> str:
        kind = self.kind
        if kind is EntryKind.TEXT or kind is EntryKind.RICH_TEXT:
            return self.text or ""
        if kind is EntryKind.IMAGE:
            return f"Image copied at {self.formatted_timestamp()}"
        if kind is EntryKind.FILES:
            return "\n".join(self.paths)
        raise ValueError(f"unknown entry kind: {kind!r}")

    def formatted_timestamp(self) -> str:
        try:
            return f"{datetime.fromtimestamp(self.created_at):%Y-%m-%d %H:%M}"
        except (OverflowError, OSError, ValueError):
            return ""


def capture(snapshot: Optional[ClipboardSnapshot]) -> Optional[Entry]:
    """Pick the richest representation the clipboard offers.

    Order: file references, rich text, image, plain text. A single copy often
    exposes several of these at once.
    """
    if snapshot is None:
        return None

    paths = [p for p in snapshot.paths if p and os.path.isabs(p)]
    if paths:
        return Entry.files(paths)

    if snapshot.rich_data:
        data_format = snapshot.rich_format or RTF_FORMAT
        text = snapshot.text
        if text is None:
            text = plain_projection(snapshot.rich_data, data_format)
        return Entry.rich(snapshot.rich_data, data_format, text)

    if snapshot.image_png:
        return Entry.image(snapshot.image_png)

    if snapshot.text:
        return Entry.plain(snapshot.text)

    return None


def plain_projection(data: bytes, data_format: str) -> str:
    """Best-effort plain text for formatted bytes that came without one."""
    if data_format == HTML_FORMAT:
        doc = QtGui.QTextDocument()
        doc.setHtml(data.decode("utf-8", errors="replace"))
        return doc.toPlainText().strip()

    raw = data.decode("latin-1")
    raw = _RTF_FONT_TABLE.sub("", raw)
    raw = _RTF_DESTINATION.sub("", raw)
    raw = _RTF_PAR.sub("\n", raw)
    raw = _RTF_HEX.sub(lambda m: bytes([int(m.group(1), 16)]).decode("cp1252", errors="replace"), raw)
    raw = _RTF_CONTROL.sub("", raw)
    return raw.replace("{", "").replace("}", "").strip()


def format_time_ago(ts: float) -> str:
    try:
        dt = datetime.fromtimestamp(ts, tz=timezone.utc).astimezone()
    except (OverflowError, OSError, ValueError):
        return ""
    # local wall clock for both the label and the same-day check
    now = datetime.now(timezone.utc).astimezone()
    delta = now - dt
    secs = int(delta.total_seconds())
    if secs < 0:
        secs = 0
    if secs < 60:
        return f"{secs}s ago"
    mins = secs // 60
    if mins < 60:
        return f"{mins} min ago"
    hours = mins // 60
    if hours < 24 and dt.date() == now.date():
        return f"Today {dt:%H:%M}"
    if hours < 48:
        return f"Yesterday {dt:%H:%M}"
    return f"{dt:%Y-%m-%d %H:%M}"


def _truncate(text: str, max_len: int) -> str:
    if len(text) > max_len:
        return text[:max_len] + ELLIPSIS
    return text


def _file_name(path: str) -> str:
    trimmed = path.rstrip("/\\") or path
    return os.path.basename(trimmed) or trimmed
