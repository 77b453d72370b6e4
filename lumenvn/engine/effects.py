from __future__ import annotations

from typing import Optional, Tuple

from .events import EventSystem, ShakeEffectEvent
from .renderer import IRenderSurface
from .scheduler import TaskBody


# (upper bound, class, duration ms), checked in order
SHAKE_TIERS: Tuple[Tuple[int, str, int], ...] = (
    (25, "shake-1-25", 400),
    (50, "shake-26-50", 600),
    (75, "shake-51-75", 800),
    (100, "shake-76-100", 1000),
)
SHAKE_CLASSES = tuple(cls for _, cls, _ in SHAKE_TIERS)


def tier_for(intensity: int) -> Optional[Tuple[int, str, int]]:
    """Map 1..100 to (tier number 1-4, class, duration ms); None when out of range."""
    if not isinstance(intensity, int) or intensity < 1 or intensity > 100:
        return None
    for number, (upper, cls, duration) in enumerate(SHAKE_TIERS, start=1):
        if intensity <= upper:
            return number, cls, duration
    return None  # pragma: no cover - unreachable


class ShakePlayer:
    def __init__(self, surface: IRenderSurface, events: Optional[EventSystem] = None) -> None:
        self.surface = surface
        self._events = events

    def perform(self, intensity: int) -> TaskBody:
        tier = tier_for(intensity)
        if tier is None:
            return
        number, cls, duration = tier
        # clear any previous tier before applying the new one
        self.surface.set_shake(None)
        self.surface.set_shake(cls)
        if self._events is not None:
            self._events.emit(ShakeEffectEvent(intensity=intensity, tier=number, duration_ms=duration))
        try:
            yield duration
        finally:
            self.surface.set_shake(None)
