from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ArchiveError(Exception):
    """Failure on the archive container itself (open/close)."""
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - formatting
        loc = f" ({self.path})" if self.path else ""
        return f"{self.message}{loc}"


class ArchiveOpenError(ArchiveError):
    pass


class ArchiveCloseError(ArchiveError):
    pass


@dataclass
class EntryError(Exception):
    """Failure scoped to a single archive entry. Never aborts a multi-entry write."""
    message: str
    name: str | None = None

    def __str__(self) -> str:  # pragma: no cover - formatting
        loc = f" [{self.name}]" if self.name else ""
        return f"{self.message}{loc}"


class UnknownExtensionError(EntryError):
    pass


class UnsupportedFormatError(EntryError):
    pass


class TypeMismatchError(EntryError):
    pass


class EncodeError(EntryError):
    pass


class DecodeError(EntryError):
    pass


class EntryWriteError(EntryError):
    pass


class EntryNotFoundError(EntryError):
    pass
