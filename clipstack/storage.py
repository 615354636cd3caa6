"""
History persistence.

The history is one opaque blob in one slot: ``encode_entries`` turns the
ordered entries into JSON bytes, ``HistoryFile`` writes that blob atomically
and reads it back, ``decode_entries`` rebuilds the entries. Records the
decoder does not understand are skipped instead of failing the whole load,
so older and newer files both stay readable.
"""

import base64
import binascii
import dataclasses
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .entry import RTF_FORMAT, Entry, EntryKind
from .errors import StorageError


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
HISTORY_FILE_NAME = "history.json"
APP_DIR_NAME = "Clipstack"


def default_app_dir() -> str:
    path = os.getenv("CLIPSTACK_HOME")
    if not path:
        base = os.getenv("APPDATA") or os.path.expanduser("~")
        path = os.path.join(base, APP_DIR_NAME)
    os.makedirs(path, exist_ok=True)
    return path


def default_history_path() -> str:
    return os.path.join(default_app_dir(), HISTORY_FILE_NAME)


class HistoryFile:
    def __init__(self, path: Optional[str] = None):
        self.path = path or default_history_path()

    def load(self) -> Optional[bytes]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"could not read {self.path}", e) from e

    def save(self, data: bytes) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"could not write {self.path}", e) from e


# -------- encoding --------
def encode_entries(entries: Iterable[Entry]) -> bytes:
    payload = {
        "version": FORMAT_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "items": [_encode_entry(it) for it in entries],
    }
    return json.dumps(payload, indent=2).encode("utf-8")


def _encode_entry(entry: Entry) -> Dict[str, Any]:
    row: Dict[str, Any] = {"id": entry.id, "kind": entry.kind.value, "created_at": entry.created_at}
    kind = entry.kind
    if kind is EntryKind.TEXT:
        row["text"] = entry.text
    elif kind is EntryKind.RICH_TEXT:
        row["data"] = _b64(entry.data)
        row["data_format"] = entry.data_format
        row["text"] = entry.text
    elif kind is EntryKind.IMAGE:
        row["data"] = _b64(entry.data)
    elif kind is EntryKind.FILES:
        row["paths"] = list(entry.paths)
    else:
        raise ValueError(f"unknown entry kind: {kind!r}")
    return row


def _b64(data: Optional[bytes]) -> str:
    return base64.b64encode(data or b"").decode("ascii")


# -------- decoding --------
def decode_entries(data: Optional[bytes]) -> List[Entry]:
    """Rebuild entries from a saved blob. Never raises; bad input gives []."""
    if not data:
        return []
    try:
        doc = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        logger.warning("Saved history is not valid JSON; starting empty")
        return []

    rows = doc.get("items") if isinstance(doc, dict) else None
    if not isinstance(rows, list):
        logger.warning("Saved history has no item list; starting empty")
        return []

    version = doc.get("version")
    if version != FORMAT_VERSION:
        logger.info("Reading history format %r with reader for version %d", version, FORMAT_VERSION)

    entries: List[Entry] = []
    seen_ids = set()
    for row in rows:
        entry = _decode_entry(row)
        if entry is None:
            continue
        if entry.id in seen_ids:
            entry = dataclasses.replace(entry, id=Entry._new_id())
        seen_ids.add(entry.id)
        entries.append(entry)
    return entries


def _decode_entry(row: Any) -> Optional[Entry]:
    if not isinstance(row, dict):
        return None
    try:
        kind = EntryKind(row.get("kind"))
    except ValueError:
        logger.debug("Skipping history record of unknown kind %r", row.get("kind"))
        return None

    item_id = str(row.get("id") or "").strip() or Entry._new_id()
    created_at = _timestamp(row.get("created_at"))

    fields: Dict[str, Any] = {}
    if kind is EntryKind.TEXT:
        fields["text"] = row.get("text")
    elif kind is EntryKind.RICH_TEXT:
        fields["data"] = _unb64(row.get("data"))
        fields["data_format"] = row.get("data_format") or RTF_FORMAT
        fields["text"] = row.get("text") if isinstance(row.get("text"), str) else ""
    elif kind is EntryKind.IMAGE:
        fields["data"] = _unb64(row.get("data"))
    elif kind is EntryKind.FILES:
        paths = row.get("paths")
        fields["paths"] = tuple(paths) if isinstance(paths, list) else ()

    try:
        return Entry(id=item_id, kind=kind, created_at=created_at, **fields)
    except (TypeError, ValueError):
        logger.debug("Skipping unusable %s history record %s", kind.value, item_id)
        return None


def _timestamp(value: Any) -> float:
    """A usable epoch time, or 0.0 for anything missing, non-finite or out of range."""
    try:
        ts = float(value or 0.0)
        datetime.fromtimestamp(ts)
    except (TypeError, ValueError, OverflowError, OSError):
        return 0.0
    return ts


def _unb64(value: Any) -> Optional[bytes]:
    if not isinstance(value, str):
        return None
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        return None
