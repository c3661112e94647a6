"""
Archive reader/writer over ``zipfile``.

Both objects follow an explicit open/.../close protocol:

    writer = ZipWriter()
    writer.open(path, WriteMode.APPEND)
    writer.start_entry("save/state.json")
    writer.write(payload)
    writer.close_entry()
    writer.close()

and also work as context managers.
"""
from __future__ import annotations

import io
import logging
import time
import zipfile
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .config_io import compression_for, load_config
from .errors import (
    ArchiveCloseError, ArchiveOpenError, DecodeError, EntryNotFoundError, EntryWriteError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class WriteMode(Enum):
    CREATE = "w"    # truncate-and-create
    APPEND = "a"    # keep existing entries, create the file if missing


class ZipWriter:
    def __init__(
        self,
        compression: Optional[int] = None,
        compresslevel: Optional[int] = None,
        cfg: Optional[dict] = None,
    ):
        # without an explicit method the "archive" config section decides
        if compression is None:
            compression, level = compression_for(cfg if cfg is not None else load_config())
            compresslevel = compresslevel if compresslevel is not None else level
        self._compression = compression
        self._compresslevel = compresslevel
        self._zf: Optional[zipfile.ZipFile] = None
        self._path: Optional[Path] = None
        self._entry: Optional[zipfile.ZipInfo] = None
        self._buffer: Optional[io.BytesIO] = None

    @property
    def is_open(self) -> bool:
        return self._zf is not None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def open(self, path: PathLike, mode: WriteMode = WriteMode.CREATE) -> None:
        p = Path(path)
        if self._zf is not None:
            raise ArchiveOpenError("writer is already open", str(self._path))
        if mode is WriteMode.APPEND and p.exists() and not zipfile.is_zipfile(p):
            raise ArchiveOpenError("existing file is not a zip archive", str(p))
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            self._zf = zipfile.ZipFile(
                p, mode.value,
                compression=self._compression,
                compresslevel=self._compresslevel,
            )
        except (OSError, zipfile.BadZipFile, RuntimeError, ValueError) as e:
            raise ArchiveOpenError(f"cannot open archive for writing: {e}", str(p)) from e
        self._path = p
        logger.debug(f"Opened {p} for writing ({mode.name})")

    def _require_open(self, name: Optional[str] = None) -> zipfile.ZipFile:
        if self._zf is None:
            raise EntryWriteError("archive is not open", name)
        return self._zf

    def start_entry(self, name: str) -> None:
        self._require_open(name)
        if self._entry is not None:
            raise EntryWriteError(f"entry '{self._entry.filename}' is still open", name)
        if not name or name.endswith("/"):
            raise EntryWriteError("invalid entry name", name)
        info = zipfile.ZipInfo(name, date_time=time.localtime(time.time())[:6])
        info.compress_type = self._compression
        info.external_attr = 0o644 << 16
        self._entry = info
        self._buffer = io.BytesIO()

    def write(self, data: bytes) -> None:
        if self._entry is None or self._buffer is None:
            raise EntryWriteError("no entry is open")
        self._buffer.write(data)

    def close_entry(self) -> None:
        zf = self._require_open()
        if self._entry is None or self._buffer is None:
            raise EntryWriteError("no entry is open")
        info, data = self._entry, self._buffer.getvalue()
        self._entry, self._buffer = None, None
        try:
            zf.writestr(info, data, compress_type=self._compression, compresslevel=self._compresslevel)
        except (OSError, ValueError, RuntimeError, zipfile.LargeZipFile) as e:
            raise EntryWriteError(f"failed to write entry: {e}", info.filename) from e

    def abandon_entry(self) -> None:
        """Drop the currently open entry without writing it."""
        if self._entry is not None:
            logger.debug(f"Abandoned entry {self._entry.filename}")
        self._entry, self._buffer = None, None

    def copy_entry(self, info: zipfile.ZipInfo, data: bytes) -> None:
        """Write ``data`` under a copy of ``info``, keeping its metadata."""
        zf = self._require_open(info.filename)
        new_info = zipfile.ZipInfo(info.filename, date_time=info.date_time)
        new_info.compress_type = info.compress_type
        new_info.external_attr = info.external_attr
        new_info.create_system = info.create_system
        new_info.comment = info.comment
        try:
            zf.writestr(new_info, data)
        except (OSError, ValueError, RuntimeError, NotImplementedError) as e:
            raise EntryWriteError(f"failed to copy entry: {e}", info.filename) from e

    def close(self) -> None:
        if self._zf is None:
            return
        if self._entry is not None:
            logger.warning(f"Closing {self._path} with unfinished entry {self._entry.filename}")
            self.abandon_entry()
        zf, self._zf = self._zf, None
        try:
            zf.close()
        except (OSError, ValueError, RuntimeError) as e:
            raise ArchiveCloseError(f"failed to finalize archive: {e}", str(self._path)) from e
        logger.debug(f"Closed {self._path}")

    def __enter__(self) -> "ZipWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZipReader:
    def __init__(self) -> None:
        self._zf: Optional[zipfile.ZipFile] = None
        self._path: Optional[Path] = None

    @property
    def is_open(self) -> bool:
        return self._zf is not None

    def open(self, path: PathLike) -> None:
        p = Path(path)
        if self._zf is not None:
            raise ArchiveOpenError("reader is already open", str(self._path))
        try:
            self._zf = zipfile.ZipFile(p, "r")
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ArchiveOpenError(f"cannot open archive for reading: {e}", str(p)) from e
        self._path = p

    def _require_open(self) -> zipfile.ZipFile:
        if self._zf is None:
            raise ArchiveOpenError("reader is not open")
        return self._zf

    def list_entries(self) -> List[str]:
        """Entry names in archive order, directory entries excluded."""
        return [i.filename for i in self._require_open().infolist() if not i.is_dir()]

    def infolist(self) -> List[zipfile.ZipInfo]:
        return self._require_open().infolist()

    def read_entry(self, name: Union[str, zipfile.ZipInfo]) -> bytes:
        zf = self._require_open()
        label = name.filename if isinstance(name, zipfile.ZipInfo) else name
        try:
            return zf.read(name)
        except KeyError as e:
            raise EntryNotFoundError("no such entry in archive", label) from e
        except (OSError, zipfile.BadZipFile, RuntimeError, NotImplementedError) as e:
            raise DecodeError(f"entry could not be read: {e}", label) from e

    def close(self) -> None:
        if self._zf is not None:
            zf, self._zf = self._zf, None
            zf.close()

    def __enter__(self) -> "ZipReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
