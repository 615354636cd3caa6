"""Exceptions raised inside clipstack. None of them is fatal to the app."""

from typing import Optional


class ClipstackError(Exception):
    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.original_error is not None:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class ClipboardReadError(ClipstackError):
    """Clipboard content vanished or could not be read this tick."""


class StorageError(ClipstackError):
    """History file could not be read or written."""
