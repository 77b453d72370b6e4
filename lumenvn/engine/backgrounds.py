from __future__ import annotations

import logging
from typing import Optional

from .asset_cache import AssetCache, AssetLoadFailure
from .events import BackgroundChangeEvent, ErrorEvent, EventSystem
from .renderer import IRenderSurface
from .scheduler import TaskBody
from .transitions import FRAME_MS, tween

logger = logging.getLogger(__name__)


class BackgroundTransitioner:
    """Crossfades the base background to a new image.

    The old background stays visible underneath until the overlay is fully
    opaque; if the new image cannot be preloaded it is swapped in directly.
    """

    def __init__(self, surface: IRenderSurface, images: AssetCache, duration_ms: int = 1000,
                 frame_ms: int = FRAME_MS, events: Optional[EventSystem] = None) -> None:
        self.surface = surface
        self.images = images
        self.duration_ms = duration_ms
        self.frame_ms = frame_ms
        self._events = events

    def transition_to(self, path: str) -> TaskBody:
        old = self.surface.get_background()
        if not path or path == old:
            return
        try:
            self.images.load(path)
        except AssetLoadFailure as e:
            logger.warning(f"Background preload failed, swapping without crossfade: {e}")
            self.surface.set_background(path)
            self._emit(ErrorEvent(kind="asset", message=f"background not loaded: {path}"))
            self._emit(BackgroundChangeEvent(old_path=old, new_path=path, crossfade=False))
            return
        self.surface.show_background_overlay(path)
        self.surface.flush()
        yield from tween(apply=self.surface.set_overlay_opacity, start=0.0, end=1.0,
                         duration_ms=self.duration_ms, frame_ms=self.frame_ms)
        self.surface.commit_background_overlay()
        self._emit(BackgroundChangeEvent(old_path=old, new_path=path, crossfade=True))

    def _emit(self, event) -> None:
        if self._events is not None:
            self._events.emit(event)
