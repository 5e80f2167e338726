"""Error types for FastNginx operations."""

from pathlib import Path
from typing import Optional


class FastNginxError(Exception):
    """Base class for all FastNginx errors."""


class ValidationError(FastNginxError):
    """Caller input rejected before any side effect."""


class IOFailure(FastNginxError):
    """A managed file, link or index could not be read or written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class HostsFileError(IOFailure):
    """The hosts file could not be updated.

    ``manual_line`` is the entry the administrator should add by hand.
    """

    def __init__(self, message: str, path: Optional[Path] = None, manual_line: str = ""):
        super().__init__(message, path)
        self.manual_line = manual_line
