from __future__ import annotations

from typing import Callable

from .scheduler import TaskBody

FRAME_MS = 16

# fade layer opacity: fully covering vs. the dimmed veil kept while reading
FADE_OPAQUE = 1.0
FADE_READING = 0.5


def tween(
    *,
    apply: Callable[[float], None],
    start: float,
    end: float,
    duration_ms: int,
    frame_ms: int = FRAME_MS,
) -> TaskBody:
    """Linearly animate a value from ``start`` to ``end`` over ``duration_ms``.

    ``apply`` receives each intermediate value; the final call is always ``end``.
    """
    duration_ms = max(0, int(duration_ms))
    frame_ms = max(1, int(frame_ms))
    elapsed = 0
    apply(start)
    while elapsed < duration_ms:
        step = min(frame_ms, duration_ms - elapsed)
        yield step
        elapsed += step
        t = elapsed / duration_ms
        apply(start + (end - start) * t)
    apply(end)


def fade(
    *,
    surface,
    direction: str,
    duration_ms: int,
    frame_ms: int = FRAME_MS,
) -> TaskBody:
    """Scene fade on the surface's fade layer, starting from its current opacity.

    ``"in"`` lifts the layer to the reading veil, ``"out"`` covers the scene.
    """
    end = FADE_READING if direction == "in" else FADE_OPAQUE
    start = surface.get_fade_opacity()
    yield from tween(apply=surface.set_fade_opacity, start=start, end=end,
                     duration_ms=duration_ms, frame_ms=frame_ms)
