"""
higanzip - zip archive persistence for the HiganVN engine

Writes heterogeneous in-memory values (text, structured data, pygame
surfaces, resources and scene graphs) into zip archives and reads them back.
The codec is picked from the entry name's extension.
"""

from .archive_io import append, list_entries, read, remove, write
from .entry_codec import ValueKind, decode, encode, extension_of, value_kind
from .errors import (
    ArchiveCloseError,
    ArchiveError,
    ArchiveOpenError,
    DecodeError,
    EncodeError,
    EntryError,
    EntryNotFoundError,
    EntryWriteError,
    TypeMismatchError,
    UnknownExtensionError,
    UnsupportedFormatError,
)
from .events import EventSystem, FramePostDrawEvent, ScreenshotEvent
from .options import EncodeOptions, SaveFlags
from .report import EntryResult, WriteReport
from .resources import Node, PackedScene, Resource
from .screenshot import ScreenshotRequest, write_screenshot
from .zip_io import WriteMode, ZipReader, ZipWriter

__all__ = [
    # Operations
    'write',
    'append',
    'read',
    'remove',
    'list_entries',
    'write_screenshot',
    'ScreenshotRequest',
    # Codecs
    'ValueKind',
    'encode',
    'decode',
    'extension_of',
    'value_kind',
    'EncodeOptions',
    'SaveFlags',
    # Objects
    'Resource',
    'Node',
    'PackedScene',
    # Archive
    'WriteMode',
    'ZipReader',
    'ZipWriter',
    'WriteReport',
    'EntryResult',
    # Events
    'EventSystem',
    'FramePostDrawEvent',
    'ScreenshotEvent',
    # Errors
    'ArchiveError',
    'ArchiveOpenError',
    'ArchiveCloseError',
    'EntryError',
    'EntryNotFoundError',
    'EntryWriteError',
    'UnknownExtensionError',
    'UnsupportedFormatError',
    'TypeMismatchError',
    'EncodeError',
    'DecodeError',
]
