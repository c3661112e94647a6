from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional
import logging

import pygame

from ..archive_io import append, list_entries, read, remove
from ..errors import ArchiveError
from ..events import EventSystem

logger = logging.getLogger(__name__)

THUMB_SIZE = (384, 216)


class ISaveStore(ABC):
    """Abstract save store for engine state payloads.

    Implementations should store JSON-serializable dict payloads and retrieve them intact.
    """

    @abstractmethod
    def write_quick(self, payload: dict) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def read_quick(self) -> Optional[dict]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def write_slot(self, slot: int, payload: dict) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def read_slot(self, slot: int) -> Optional[dict]:  # pragma: no cover - interface
        raise NotImplementedError

    # Optional extended APIs for UI and maintenance
    def list_slots(self) -> list[int]:  # pragma: no cover - interface
        return []

    def delete_slot(self, slot: int) -> bool:  # pragma: no cover - interface
        return False


class ZipSaveStore(ISaveStore):
    """Save store keeping every save in one zip archive.

    Entries:
    - quick.json
    - slots/slot_XX.json
    - slots/slot_XX.png (optional thumbnail)
    """

    QUICK_ENTRY = "quick.json"
    SLOT_PREFIX = "slots/slot_"

    def __init__(self, get_archive_path: Callable[[], Path], events: Optional[EventSystem] = None) -> None:
        self._get_path = get_archive_path
        self._events = events

    @property
    def archive_path(self) -> Path:
        p = self._get_path()
        return p if isinstance(p, Path) else Path(str(p))

    def _slot_entry(self, slot: int, ext: str = ".json") -> str:
        return f"{self.SLOT_PREFIX}{int(slot):02d}{ext}"

    def _replace(self, name: str, value) -> bool:
        # zip names are not unique, so drop the old entry before appending
        p = self.archive_path
        try:
            if p.exists():
                remove(p, [name], events=self._events)
            report = append(p, {name: value}, events=self._events)
        except ArchiveError as e:
            logger.error(f"Failed to store {name} in {p}: {e}")
            return False
        return report.ok

    def write_quick(self, payload: dict) -> bool:
        return self._replace(self.QUICK_ENTRY, payload)

    def read_quick(self) -> Optional[dict]:
        return read(self.archive_path, self.QUICK_ENTRY, None)

    def write_slot(self, slot: int, payload: dict) -> bool:
        return self._replace(self._slot_entry(slot), payload)

    def read_slot(self, slot: int) -> Optional[dict]:
        return read(self.archive_path, self._slot_entry(slot), None)

    # --- extended helpers ---
    def list_slots(self) -> list[int]:
        slots: list[int] = []
        for name in list_entries(self.archive_path, prefix=self.SLOT_PREFIX, suffix=".json"):
            try:
                slots.append(int(name[len(self.SLOT_PREFIX):-len(".json")]))
            except ValueError:
                continue
        slots.sort()
        return slots

    def delete_slot(self, slot: int) -> bool:
        p = self.archive_path
        if not p.exists():
            return False
        try:
            removed = remove(p, [self._slot_entry(slot), self._slot_entry(slot, ".png")], events=self._events)
        except ArchiveError as e:
            logger.error(f"Failed to delete slot {slot} from {p}: {e}")
            return False
        return bool(removed)

    def write_thumbnail(self, slot: int, surface: pygame.Surface, size: tuple = THUMB_SIZE) -> bool:
        try:
            thumb = pygame.transform.smoothscale(surface, size)
        except ValueError:
            thumb = pygame.transform.scale(surface, size)
        return self._replace(self._slot_entry(slot, ".png"), thumb)

    def read_thumbnail(self, slot: int) -> Optional[pygame.Surface]:
        return read(self.archive_path, self._slot_entry(slot, ".png"), None)
