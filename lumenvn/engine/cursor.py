from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..script.model import SceneIndex, SceneScript


DEFAULT_AUTO_SPEED_MS = 1500


class Phase(Enum):
    IDLE = "idle"
    SCENE_LOADING = "scene_loading"
    LINE_DISPATCH = "line_dispatch"
    EFFECT_RUNNING = "effect_running"
    TYPING_RUNNING = "typing_running"
    SCENE_ENDING = "scene_ending"
    CHAPTER_ROLLOVER = "chapter_rollover"


@dataclass
class PlaybackCursor:
    """The whole mutable playback session state."""
    chapter: Optional[str] = None
    scene_ordinal: int = 0
    line_index: int = 0
    char_count: int = 0
    first_line_of_scene: bool = True
    busy: bool = False
    typing: bool = False
    skip_requested: bool = False
    auto_mode: bool = False
    skip_mode: bool = False
    hidden: bool = False
    auto_speed_ms: int = DEFAULT_AUTO_SPEED_MS
    fading: bool = False
    transitioning: bool = False
    phase: Phase = Phase.IDLE
    scene_index: Optional[SceneIndex] = field(default=None, repr=False)
    script: Optional[SceneScript] = field(default=None, repr=False)

    def reset(self, auto_speed_ms: int = DEFAULT_AUTO_SPEED_MS) -> None:
        fresh = PlaybackCursor(auto_speed_ms=auto_speed_ms)
        self.__dict__.update(fresh.__dict__)

    @property
    def line_count(self) -> int:
        return len(self.script) if self.script is not None else 0

    @property
    def scene_exhausted(self) -> bool:
        return self.script is None or self.line_index >= len(self.script)

    def to_save_data(self) -> Dict[str, Any]:
        return {
            "currentChapter": self.chapter,
            "currentSceneIndex": self.scene_ordinal,
            "lineIndex": self.line_index,
            "charCount": self.char_count,
            "autoSpeed": self.auto_speed_ms,
        }

    def apply_save_data(self, data: Dict[str, Any], default_auto_speed: int = DEFAULT_AUTO_SPEED_MS) -> None:
        self.chapter = data.get("currentChapter")
        self.scene_ordinal = int(data.get("currentSceneIndex") or 0)
        self.line_index = int(data.get("lineIndex") or 0)
        self.char_count = int(data.get("charCount") or 0)
        speed = data.get("autoSpeed")
        self.auto_speed_ms = int(default_auto_speed if speed is None else speed)

    def position_valid(self) -> bool:
        """Whether the restored position can be played from ``script``."""
        if self.scene_ordinal < 0 or self.char_count < 0:
            return False
        return 0 <= self.line_index <= self.line_count
