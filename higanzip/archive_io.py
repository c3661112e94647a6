"""
Archive operations: write, append, read, remove, list.

Container failures (cannot open/finalize) raise ``ArchiveError``.
Per-entry failures are logged, recorded in the returned ``WriteReport`` and
the entry is skipped; the remaining entries are still written.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from .config_io import load_config
from .entry_codec import decode, encode
from .errors import ArchiveError, ArchiveOpenError, EntryError
from .events import (
    ArchiveEntryFailedEvent, ArchiveRemoveCompleteEvent, ArchiveWriteCompleteEvent,
    EventSystem, emit_quiet,
)
from .options import coerce_options
from .report import WriteReport
from .zip_io import PathLike, WriteMode, ZipReader, ZipWriter

logger = logging.getLogger(__name__)

Entries = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _iter_entries(entries: Entries) -> Iterable[Tuple[str, Any]]:
    if isinstance(entries, Mapping):
        return entries.items()
    return entries


def _write_entries(
    path: PathLike,
    entries: Entries,
    options: Any,
    mode: WriteMode,
    events: Optional[EventSystem],
    writer: Optional[ZipWriter],
    cfg: Optional[dict],
) -> WriteReport:
    cfg = cfg if cfg is not None else load_config()
    opts = coerce_options(options, cfg)
    writer = writer or ZipWriter(cfg=cfg)
    writer.open(path, mode)
    report = WriteReport(path=str(path), append=mode is WriteMode.APPEND)

    def fail(name: str, err: EntryError) -> None:
        logger.error(f"Skipping entry {name} in {path}: {err}")
        report.add_failure(name, str(err))
        emit_quiet(events, ArchiveEntryFailedEvent(path=str(path), name=name, error=str(err)))

    try:
        for name, value in _iter_entries(entries):
            try:
                payload = encode(name, value, opts)
            except EntryError as e:
                fail(name, e)
                continue
            try:
                writer.start_entry(name)
                writer.write(payload)
                writer.close_entry()
            except EntryError as e:
                writer.abandon_entry()
                fail(name, e)
                continue
            report.add_success(name, len(payload))
            logger.debug(f"Wrote {name} ({len(payload)} bytes) to {path}")
    finally:
        writer.close()

    emit_quiet(events, ArchiveWriteCompleteEvent(
        path=str(path),
        append=report.append,
        written=report.succeeded,
        failed=list(report.failed),
    ))
    return report


def write(
    path: PathLike,
    entries: Entries,
    options: Any = None,
    *,
    events: Optional[EventSystem] = None,
    writer: Optional[ZipWriter] = None,
    cfg: Optional[dict] = None,
) -> WriteReport:
    """Create ``path`` afresh holding exactly the given entries.

    ``entries`` is a mapping of entry name to value, or an iterable of
    ``(name, value)`` pairs. ``options`` is an ``EncodeOptions`` or a mapping
    with ``lossy``/``quality``/``flags``; whatever it leaves out, and the
    zip compression method, come from ``cfg`` (``load_config()`` if omitted).
    """
    return _write_entries(path, entries, options, WriteMode.CREATE, events, writer, cfg)


def append(
    path: PathLike,
    entries: Entries,
    options: Any = None,
    *,
    events: Optional[EventSystem] = None,
    writer: Optional[ZipWriter] = None,
    cfg: Optional[dict] = None,
) -> WriteReport:
    """Add entries to ``path``, keeping what is already there."""
    return _write_entries(path, entries, options, WriteMode.APPEND, events, writer, cfg)


def read(path: PathLike, name: str, default: Any = None) -> Any:
    """Return the decoded value of entry ``name``, or ``default`` on any failure."""
    reader = ZipReader()
    try:
        reader.open(path)
    except ArchiveOpenError as e:
        logger.warning(f"Cannot read {name}: {e}")
        return default
    try:
        payload = reader.read_entry(name)
    except EntryError as e:
        logger.warning(f"Cannot read {name} from {path}: {e}")
        return default
    finally:
        reader.close()
    try:
        return decode(payload, name)
    except EntryError as e:
        logger.warning(f"Cannot decode {name} from {path}: {e}")
        return default


def remove(
    path: PathLike,
    names: Union[str, Iterable[str]],
    *,
    events: Optional[EventSystem] = None,
) -> List[str]:
    """Rewrite ``path`` without the named entries and swap it into place.

    Returns the names that were actually removed. If either archive cannot be
    opened the original is left untouched and ``ArchiveOpenError`` is raised.
    """
    src = Path(path)
    doomed = {names} if isinstance(names, str) else set(names)

    reader = ZipReader()
    reader.open(src)
    try:
        infos = reader.infolist()
        # duplicate names are all dropped but reported once
        removed = list(dict.fromkeys(i.filename for i in infos if i.filename in doomed))
        if not removed:
            logger.debug(f"Nothing to remove from {src}")
            return []

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{src.name}.", suffix=".tmp", dir=src.parent)
        except OSError as e:
            raise ArchiveOpenError(f"cannot create temporary archive: {e}", str(src)) from e
        os.close(fd)
        tmp = Path(tmp_name)
        try:
            # copy with the source's own compression per entry
            with ZipWriter() as writer:
                writer.open(tmp, WriteMode.CREATE)
                for info in infos:
                    if info.filename in doomed:
                        continue
                    writer.copy_entry(info, reader.read_entry(info))
            reader.close()
            os.replace(tmp, src)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    except EntryError as e:
        raise ArchiveError(f"failed to copy entry {e.name}: {e.message}", str(src)) from e
    finally:
        reader.close()

    logger.debug(f"Removed {removed} from {src}")
    emit_quiet(events, ArchiveRemoveCompleteEvent(path=str(src), removed=removed))
    return removed


def list_entries(path: PathLike, prefix: str = "", suffix: str = "") -> List[str]:
    """Entry names in archive order matching both filters (empty matches all)."""
    reader = ZipReader()
    try:
        reader.open(path)
    except ArchiveOpenError as e:
        logger.error(f"Cannot list entries: {e}")
        return []
    try:
        return [
            n for n in reader.list_entries()
            if n.startswith(prefix) and n.endswith(suffix)
        ]
    finally:
        reader.close()
