"""
Archive and frame events.

The renderer emits ``FramePostDrawEvent`` after each flip; deferred
screenshots subscribe to it once. Archive operations report what they did
through the ``Archive*`` events when an ``EventSystem`` is passed in.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


class Priority(IntEnum):
    """Listener priority - higher values run first."""
    LOW = 25
    NORMAL = 50
    HIGH = 75


@dataclass
class Event:
    timestamp: float = field(default_factory=time.time, init=False, repr=False)


@dataclass
class FramePostDrawEvent(Event):
    """Fired by the renderer once a frame has been flipped to the display.

    ``surface`` is the finished frame when the renderer has one at hand;
    listeners fall back to ``pygame.display.get_surface()`` otherwise.
    """
    frame: int = 0
    surface: Any = None


@dataclass
class ScreenshotEvent(Event):
    """Fired when a deferred screenshot finished, written or not."""
    path: str = ""
    name: str = ""
    success: bool = False


@dataclass
class ArchiveEvent(Event):
    path: str = ""


@dataclass
class ArchiveEntryFailedEvent(ArchiveEvent):
    """A single entry could not be encoded or written and was skipped."""
    name: str = ""
    error: str = ""


@dataclass
class ArchiveWriteCompleteEvent(ArchiveEvent):
    append: bool = False
    written: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class ArchiveRemoveCompleteEvent(ArchiveEvent):
    removed: List[str] = field(default_factory=list)


Callback = Callable[[Any], None]


@dataclass
class _Listener:
    callback: Callback
    priority: int
    once: bool


class EventSystem:
    """
    Dispatches events to listeners registered per event class.

    Listeners run in priority order. A listener that raises is logged and
    the remaining listeners still run. ``once`` listeners are dropped before
    they are invoked, so they never run twice even if they raise or emit.
    """

    def __init__(self) -> None:
        self._listeners: Dict[Type[Event], List[_Listener]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(
        self,
        event_type: Type[Event],
        callback: Callback,
        priority: Priority = Priority.NORMAL,
        once: bool = False,
    ) -> Callable[[], bool]:
        """Register ``callback`` for ``event_type``; returns an unsubscribe function."""
        listener = _Listener(callback, int(priority), once)
        with self._lock:
            listeners = self._listeners[event_type]
            listeners.append(listener)
            # stable: equal priorities keep registration order
            listeners.sort(key=lambda l: l.priority, reverse=True)

        def unsubscribe() -> bool:
            return self._drop(event_type, listener)
        return unsubscribe

    def once(self, event_type: Type[Event], callback: Callback, priority: Priority = Priority.NORMAL) -> Callable[[], bool]:
        return self.subscribe(event_type, callback, priority=priority, once=True)

    def unsubscribe(self, event_type: Type[Event], callback: Callback) -> bool:
        with self._lock:
            for listener in self._listeners.get(event_type, []):
                if listener.callback == callback:
                    return self._drop(event_type, listener)
        return False

    def _drop(self, event_type: Type[Event], listener: _Listener) -> bool:
        with self._lock:
            try:
                self._listeners[event_type].remove(listener)
            except ValueError:
                return False
        return True

    def emit(self, event: Event) -> Event:
        event_type = type(event)
        with self._lock:
            listeners = list(self._listeners.get(event_type, []))
            for listener in listeners:
                if listener.once:
                    self._listeners[event_type].remove(listener)

        for listener in listeners:
            try:
                listener.callback(event)
            except Exception as e:
                logger.error(f"Error in listener for {event_type.__name__}: {e}", exc_info=True)
        return event

    def listener_count(self, event_type: Optional[Type[Event]] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._listeners.get(event_type, []))
            return sum(len(l) for l in self._listeners.values())


def emit_quiet(events: Optional[EventSystem], event: Event) -> None:
    """Emit on ``events`` if one was supplied."""
    if events is not None:
        events.emit(event)
