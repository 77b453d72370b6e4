from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union


POSITIONS = ("left", "center", "right")
DEFAULT_POSITION = "center"


@dataclass(frozen=True)
class Dialogue:
    text: str
    background: Optional[str] = None
    # None inherits the current portrait; "" clears it
    character: Optional[str] = None
    position: Optional[str] = None


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Shake:
    intensity: int


@dataclass(frozen=True)
class AudioPlay:
    path: str
    loop_count: int = 1  # -1 loops forever


@dataclass(frozen=True)
class AudioStop:
    pass


LineDirective = Union[Dialogue, Clear, Shake, AudioPlay, AudioStop]

INSTANT_DIRECTIVES = (Clear, Shake, AudioPlay, AudioStop)


def is_instantaneous(directive: LineDirective) -> bool:
    """Instantaneous directives chain straight into the next line."""
    return isinstance(directive, INSTANT_DIRECTIVES)


@dataclass(frozen=True)
class SceneScript:
    file_id: str
    lines: Tuple[LineDirective, ...] = ()

    def __len__(self) -> int:
        return len(self.lines)

    def line_at(self, index: int) -> Optional[LineDirective]:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return None


class SceneIndex:
    """Chapter key -> ordered scene file ids. Immutable once built.

    Chapters are played in ascending key order.
    """

    def __init__(self, mapping: Mapping[str, Iterable[str]]) -> None:
        frozen: Dict[str, Tuple[str, ...]] = {}
        for key in sorted(mapping):
            frozen[str(key)] = tuple(str(f) for f in mapping[key])
        self._chapters: Tuple[str, ...] = tuple(frozen)
        self._files = MappingProxyType(frozen)

    @property
    def chapters(self) -> Tuple[str, ...]:
        return self._chapters

    @property
    def is_empty(self) -> bool:
        return not self._chapters

    @property
    def first_chapter(self) -> Optional[str]:
        return self._chapters[0] if self._chapters else None

    def scenes(self, chapter: str) -> Sequence[str]:
        return self._files.get(chapter, ())

    def scene_file(self, chapter: Optional[str], ordinal: int) -> Optional[str]:
        if chapter is None or ordinal < 0:
            return None
        files = self._files.get(chapter, ())
        if ordinal < len(files):
            return files[ordinal]
        return None

    def next_chapter(self, chapter: Optional[str]) -> Optional[str]:
        if chapter is None:
            return self.first_chapter
        for key in self._chapters:
            if key > chapter:
                return key
        return None

    def to_dict(self) -> Dict[str, list]:
        return {k: list(v) for k, v in self._files.items()}

    def __contains__(self, chapter: object) -> bool:
        return chapter in self._files

    def __len__(self) -> int:
        return len(self._chapters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SceneIndex):
            return NotImplemented
        return dict(self._files) == dict(other._files)

    def __repr__(self) -> str:
        return f"SceneIndex({self.to_dict()!r})"
