"""
Clipboard access.

The core only talks to ``ClipboardBackend``: a change counter, a read that
returns a ``ClipboardSnapshot`` and a write of an ``Entry``. ``QtClipboard``
implements it on top of ``QClipboard``.
"""

import logging
from typing import Optional, Protocol, Tuple

from PySide6 import QtCore, QtGui

from .entry import HTML_FORMAT, RTF_FORMAT, ClipboardSnapshot, Entry, EntryKind
from .errors import ClipboardReadError


logger = logging.getLogger(__name__)

MAX_CLIPBOARD_TEXT_BYTES = 500 * 1024  # 500KB
RTF_MIME_TYPES = ("text/rtf", "application/rtf", "text/richtext", 'application/x-qt-windows-mime;value="Rich Text Format"')


class ClipboardBackend(Protocol):
    def change_count(self) -> int:
        """Monotonic counter, bumped by every content-replacing write (ours too)."""
        ...

    def read(self) -> Optional[ClipboardSnapshot]:
        """Current content, or None when empty. May raise ClipboardReadError."""
        ...

    def write(self, entry: Entry) -> None: ...


class QtClipboard(QtCore.QObject):
    """``ClipboardBackend`` over the application's ``QClipboard``.

    Qt has no change counter, so one is kept here: it advances on every
    ``dataChanged`` signal and, for platforms that only deliver that signal
    when the app is active, whenever the offered formats or text differ from
    what the previous poll saw.
    """

    def __init__(self, clipboard: Optional[QtGui.QClipboard] = None, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self._clipboard = clipboard or QtGui.QGuiApplication.clipboard()
        self._count = 0
        self._fingerprint: Optional[Tuple[Tuple[str, ...], int]] = None
        self._clipboard.dataChanged.connect(self._on_data_changed)

    def _on_data_changed(self) -> None:
        self._count += 1
        # re-baseline on the next poll so the same change is not counted twice
        self._fingerprint = None

    def change_count(self) -> int:
        fingerprint = self._take_fingerprint()
        if self._fingerprint is None:
            self._fingerprint = fingerprint
        elif fingerprint != self._fingerprint:
            self._fingerprint = fingerprint
            self._count += 1
        return self._count

    def _take_fingerprint(self) -> Tuple[Tuple[str, ...], int]:
        md = self._clipboard.mimeData()
        if md is None:
            return ((), 0)
        try:
            return (tuple(md.formats()), hash(md.text()))
        except RuntimeError:
            return ((), 0)

    # -------- reading --------
    def read(self) -> Optional[ClipboardSnapshot]:
        md = self._clipboard.mimeData()
        if md is None:
            return None
        try:
            paths: Tuple[str, ...] = ()
            if md.hasUrls():
                paths = tuple(u.toLocalFile() for u in md.urls() if u.isLocalFile())

            rich_data, rich_format = self._read_rich(md)

            # Encoding to PNG is the expensive part; skip it when a richer
            # representation already wins.
            image_png = None
            if not paths and rich_data is None and md.hasImage():
                image_png = self._encode_png(md.imageData())

            text = md.text() if md.hasText() else None
        except RuntimeError as e:
            raise ClipboardReadError("clipboard content vanished while reading", e) from e

        if text is not None and _too_large(text.encode("utf-8", errors="ignore")):
            logger.debug("Ignoring clipboard text over %d bytes", MAX_CLIPBOARD_TEXT_BYTES)
            text = None
        if rich_data is not None and _too_large(rich_data):
            rich_data, rich_format = None, None

        if not paths and rich_data is None and image_png is None and not text:
            return None
        return ClipboardSnapshot(
            paths=paths,
            rich_data=rich_data,
            rich_format=rich_format,
            image_png=image_png,
            text=text,
        )

    def _read_rich(self, md: QtCore.QMimeData) -> Tuple[Optional[bytes], Optional[str]]:
        formats = set(md.formats())
        for mime in RTF_MIME_TYPES:
            if mime in formats:
                data = bytes(md.data(mime).data())
                if data:
                    return data, RTF_FORMAT
        if md.hasHtml():
            markup = md.html()
            if markup:
                return markup.encode("utf-8"), HTML_FORMAT
        return None, None

    @staticmethod
    def _encode_png(image_data) -> Optional[bytes]:
        image = image_data
        if isinstance(image, QtGui.QPixmap):
            image = image.toImage()
        if not isinstance(image, QtGui.QImage) or image.isNull():
            logger.debug("Clipboard image could not be decoded")
            return None
        buf = QtCore.QBuffer()
        buf.open(QtCore.QIODevice.OpenModeFlag.WriteOnly)
        if not image.save(buf, "PNG"):
            logger.debug("Clipboard image could not be encoded as PNG")
            return None
        return bytes(buf.data().data())

    # -------- writing --------
    def write(self, entry: Entry) -> None:
        md = QtCore.QMimeData()
        kind = entry.kind
        if kind is EntryKind.TEXT:
            md.setText(entry.text or "")
        elif kind is EntryKind.RICH_TEXT:
            if entry.data_format == HTML_FORMAT:
                md.setHtml(entry.data.decode("utf-8", errors="replace"))
            else:
                md.setData(entry.data_format, QtCore.QByteArray(entry.data))
            if entry.text:
                md.setText(entry.text)
        elif kind is EntryKind.IMAGE:
            image = QtGui.QImage.fromData(entry.data, "PNG")
            md.setImageData(image)
        elif kind is EntryKind.FILES:
            md.setUrls([QtCore.QUrl.fromLocalFile(p) for p in entry.paths])
        else:
            raise ValueError(f"unknown entry kind: {kind!r}")
        self._clipboard.setMimeData(md, mode=self._clipboard.Mode.Clipboard)


def _too_large(data: bytes) -> bool:
    return len(data) > MAX_CLIPBOARD_TEXT_BYTES
