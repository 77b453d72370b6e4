"""
Audio cue player

One cue plays at a time. Clips are cached by path for the session.
Failures never block playback: they are logged and the cue just ends.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from .adapters.audio import IAudio
from .asset_cache import AssetCache, AssetLoadFailure
from .events import AudioCuePlayEvent, AudioCueStopEvent, ErrorEvent, EventSystem
from .scheduler import TaskBody

logger = logging.getLogger(__name__)

LOOP_FOREVER = -1


class AudioCuePlayer:
    def __init__(self, backend: IAudio, events: Optional[EventSystem] = None) -> None:
        self.backend = backend
        self.clips = AssetCache(loader=backend.load, kind="audio")
        self._events = events
        self._current: Any = None
        self._current_path: Optional[str] = None
        # bumped on every play/stop so a superseded repetition loop stops replaying
        self._generation = 0

    @property
    def current_path(self) -> Optional[str]:
        return self._current_path

    def play(self, path: str, loop_count: int = 1) -> TaskBody:
        """Play ``path`` ``loop_count`` times (-1 = forever).

        Completes when the last repetition ends, or right after starting for
        an endless cue.
        """
        self.stop()
        self._generation += 1
        generation = self._generation
        try:
            clip = self.clips.load(path)
        except AssetLoadFailure as e:
            logger.error(f"Audio cue load failed: {e}")
            self._emit(ErrorEvent(kind="asset", message=f"audio not loaded: {path}"))
            return
        self._current = clip
        self._current_path = path
        self._emit(AudioCuePlayEvent(path=path, loop_count=loop_count))

        if loop_count == LOOP_FOREVER:
            self._start(clip, path, loops=-1)
            return

        for _ in range(max(1, int(loop_count))):
            if generation != self._generation:
                return
            if not self._start(clip, path, loops=0):
                return
            yield self._length(clip, path)
        if generation == self._generation:
            self._current = None
            self._current_path = None

    def stop(self) -> None:
        """Halt and rewind the current cue. Safe to call when nothing plays."""
        self._generation += 1
        clip, path = self._current, self._current_path
        self._current = None
        self._current_path = None
        if clip is None:
            return
        try:
            self.backend.stop(clip)
        except Exception as e:
            logger.warning(f"Audio cue stop failed: {e}")
        self._emit(AudioCueStopEvent(path=path or ""))

    def cleanup(self) -> None:
        self.stop()
        self.clips.clear()

    def _start(self, clip: Any, path: str, loops: int) -> bool:
        try:
            self.backend.play(clip, loops=loops)
            return True
        except Exception as e:
            logger.error(f"Audio cue playback failed for {path}: {e}")
            self._emit(ErrorEvent(kind="asset", message=f"audio playback failed: {path}"))
            self._current = None
            self._current_path = None
            return False

    def _length(self, clip: Any, path: str) -> int:
        try:
            return max(0, int(self.backend.length_ms(clip)))
        except Exception as e:
            logger.warning(f"Unknown length for {path}: {e}")
            return 0

    def _emit(self, event) -> None:
        if self._events is not None:
            self._events.emit(event)
