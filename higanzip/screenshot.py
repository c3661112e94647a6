from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pygame

from .archive_io import append
from .errors import ArchiveError
from .events import EventSystem, FramePostDrawEvent, ScreenshotEvent
from .report import WriteReport
from .zip_io import PathLike

logger = logging.getLogger(__name__)


def _half_size(surface: pygame.Surface) -> pygame.Surface:
    w, h = surface.get_size()
    size = (max(1, w // 2), max(1, h // 2))
    try:
        return pygame.transform.smoothscale(surface, size)
    except ValueError:
        # smoothscale only accepts 24/32-bit surfaces
        return pygame.transform.scale(surface, size)


class ScreenshotRequest:
    """A screenshot that will be appended to an archive after the next frame.

    Created by ``write_screenshot``. The capture happens inside the
    renderer's ``FramePostDrawEvent`` emit, i.e. once the frame has been
    flipped. A request cannot be cancelled; ``capture_now`` only forces it
    to complete early for callers without a frame loop.
    """

    def __init__(
        self,
        path: PathLike,
        name: str,
        events: EventSystem,
        *,
        surface: Optional[pygame.Surface] = None,
        downsample: bool = False,
        options: Any = None,
    ):
        self.path = Path(path)
        self.name = name
        self.downsample = downsample
        self.options = options
        self.done = False
        self.report: Optional[WriteReport] = None
        self.error: Optional[Exception] = None
        self._events = events
        self._surface = surface
        self._unsubscribe = events.once(FramePostDrawEvent, self._on_frame_drawn)

    @property
    def ok(self) -> bool:
        return self.done and self.error is None and self.report is not None and self.report.ok

    def _on_frame_drawn(self, event: FramePostDrawEvent) -> None:
        self._capture(event.surface)

    def capture_now(self) -> Optional[WriteReport]:
        if not self.done:
            self._unsubscribe()
            self._capture(None)
        return self.report

    def _capture(self, frame: Optional[pygame.Surface]) -> None:
        if self.done:
            return
        src = frame if frame is not None else self._surface
        if src is None:
            src = pygame.display.get_surface()
        try:
            if src is None:
                raise ArchiveError("no frame surface to capture", str(self.path))
            shot = _half_size(src) if self.downsample else src.copy()
            self.report = append(self.path, {self.name: shot}, self.options, events=self._events)
            if not self.report.ok:
                logger.error(f"Screenshot {self.name} not written: {self.report.failed}")
        except ArchiveError as e:
            logger.error(f"Screenshot {self.name} failed: {e}")
            self.error = e
        finally:
            self.done = True
        self._events.emit(ScreenshotEvent(path=str(self.path), name=self.name, success=self.ok))


def write_screenshot(
    path: PathLike,
    name: str,
    events: EventSystem,
    *,
    surface: Optional[pygame.Surface] = None,
    downsample: bool = False,
    options: Any = None,
) -> ScreenshotRequest:
    """Append a capture of the next rendered frame to ``path`` as ``name``.

    With ``downsample`` both dimensions are halved before encoding.
    """
    return ScreenshotRequest(
        path, name, events,
        surface=surface, downsample=downsample, options=options,
    )
