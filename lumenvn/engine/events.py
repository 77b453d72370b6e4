"""
Playback events

Playback, effects and the facade publish dataclass events on one
``EventSystem``; front ends and tests subscribe to what they care about.

- listeners run in priority order, ties in subscription order
- a listener may cancel an event; lower priorities then skip it,
  MONITOR listeners still see it
- a failing listener is logged and the rest still run
"""
from __future__ import annotations

import itertools
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


class Priority(IntEnum):
    """Higher runs first."""
    LOWEST = 0
    LOW = 25
    NORMAL = 50
    HIGH = 75
    HIGHEST = 100
    MONITOR = 200  # observes, even after a cancel


@dataclass
class Event:
    emitted_at: float = field(default_factory=time.time, init=False, repr=False, compare=False)
    _stop: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def cancelled(self) -> bool:
        return self._stop

    def cancel(self) -> None:
        """Keep lower-priority listeners from seeing this event."""
        self._stop = True


# ============================================================================
# Session / scene flow
# ============================================================================

@dataclass
class SessionStartEvent(Event):
    chapter: str = ""


@dataclass
class SessionEndEvent(Event):
    """Fired when playback returns to the menu."""
    reason: str = ""  # "exit", "content_end", "no_content"


@dataclass
class ChapterStartEvent(Event):
    chapter: str = ""


@dataclass
class SceneLoadEvent(Event):
    chapter: str = ""
    scene_ordinal: int = 0
    file_id: str = ""
    line_count: int = 0


@dataclass
class SceneTransitionEvent(Event):
    from_scene: str = ""
    to_scene: str = ""


@dataclass
class ModeChangeEvent(Event):
    """Auto / skip / hidden flag flipped."""
    mode: str = ""  # "auto", "skip", "hidden"
    enabled: bool = False


# ============================================================================
# Text
# ============================================================================

@dataclass
class TextShowEvent(Event):
    """A dialogue line is about to be revealed."""
    text: str = ""
    chapter: str = ""
    scene_ordinal: int = 0
    line_index: int = 0


@dataclass
class TypewriterStartEvent(Event):
    text: str = ""
    total_chars: int = 0


@dataclass
class TypewriterSkipEvent(Event):
    revealed_chars: int = 0


@dataclass
class TypewriterCompleteEvent(Event):
    text: str = ""


# ============================================================================
# Effects
# ============================================================================

@dataclass
class BackgroundChangeEvent(Event):
    old_path: Optional[str] = None
    new_path: Optional[str] = None
    crossfade: bool = True


@dataclass
class ShakeEffectEvent(Event):
    intensity: int = 0
    tier: int = 0
    duration_ms: int = 0


@dataclass
class FadeEffectEvent(Event):
    direction: str = ""  # "in" or "out"
    duration_ms: int = 0


@dataclass
class AudioCuePlayEvent(Event):
    path: str = ""
    loop_count: int = 1


@dataclass
class AudioCueStopEvent(Event):
    path: str = ""


# ============================================================================
# Save / load
# ============================================================================

@dataclass
class SaveCompleteEvent(Event):
    slot: int = 0
    success: bool = False


@dataclass
class LoadCompleteEvent(Event):
    slot: int = 0
    success: bool = False


@dataclass
class SlotDeleteCompleteEvent(Event):
    slot: int = 0
    success: bool = False


@dataclass
class ErrorEvent(Event):
    """Non-fatal problem worth showing to the player."""
    kind: str = ""  # "content", "asset", "storage"
    message: str = ""


# ============================================================================
# Bus
# ============================================================================

E = TypeVar("E", bound=Event)
Handler = Callable[[Any], None]


@dataclass
class _Subscription:
    handler: Handler
    priority: int
    seq: int
    once: bool = False


class EventSystem:
    """
    Usage:
        events = EventSystem()
        events.subscribe(TextShowEvent, lambda e: print(e.text))

        @events.on(SessionEndEvent)
        def back_to_menu(event):
            ...
    """

    def __init__(self, debug: bool = False) -> None:
        self._subs: Dict[Type[Event], List[_Subscription]] = {}
        self._seq = itertools.count()
        self._debug = debug
        self._counts: Counter = Counter()

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None],
                  priority: int = Priority.NORMAL, once: bool = False) -> Callable[[], bool]:
        """Register ``handler``; the returned function removes it again."""
        subs = self._subs.setdefault(event_type, [])
        subs.append(_Subscription(handler, int(priority), next(self._seq), once))
        subs.sort(key=lambda s: (-s.priority, s.seq))
        return lambda: self.unsubscribe(event_type, handler)

    def once(self, event_type: Type[E], handler: Callable[[E], None],
             priority: int = Priority.NORMAL) -> Callable[[], bool]:
        return self.subscribe(event_type, handler, priority=priority, once=True)

    def on(self, event_type: Type[E], priority: int = Priority.NORMAL):
        """Decorator form of ``subscribe``."""
        def register(fn: Callable[[E], None]) -> Callable[[E], None]:
            self.subscribe(event_type, fn, priority=priority)
            return fn
        return register

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> bool:
        subs = self._subs.get(event_type)
        if not subs:
            return False
        for sub in subs:
            if sub.handler == handler:
                subs.remove(sub)
                return True
        return False

    def emit(self, event: E) -> E:
        event_type = type(event)
        self._counts[event_type.__name__] += 1
        if self._debug:
            logger.debug(f"emit {event!r}")

        for sub in list(self._subs.get(event_type, ())):
            if event.cancelled and sub.priority != Priority.MONITOR:
                continue
            if sub.once:
                self.unsubscribe(event_type, sub.handler)
            try:
                sub.handler(event)
            except Exception:
                logger.exception(f"{event_type.__name__} listener failed")
                if self._debug:
                    raise
        return event

    def clear(self, event_type: Optional[Type[Event]] = None) -> None:
        if event_type is None:
            self._subs.clear()
        else:
            self._subs.pop(event_type, None)

    def listener_count(self, event_type: Optional[Type[Event]] = None) -> int:
        if event_type is not None:
            return len(self._subs.get(event_type, ()))
        return sum(len(subs) for subs in self._subs.values())

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_emits": sum(self._counts.values()),
            "emit_counts": dict(self._counts),
        }
