from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from .errors import ContentMissing, InvalidDirective
from .model import (
    POSITIONS,
    AudioPlay,
    AudioStop,
    Clear,
    Dialogue,
    LineDirective,
    SceneIndex,
    SceneScript,
    Shake,
)


# Keys that select a directive kind; a line may carry at most one of them.
_DIALOGUE_KEYS = ("text", "bg", "char", "pos")


def _line_kinds(raw: Dict[str, Any]) -> List[str]:
    kinds: List[str] = []
    if raw.get("clear") is True:
        kinds.append("clear")
    if "shake" in raw and raw.get("shake") is not None:
        kinds.append("shake")
    if raw.get("audio"):
        kinds.append("audio")
    if raw.get("stopAudio") is True:
        kinds.append("stopAudio")
    if any(k in raw for k in _DIALOGUE_KEYS):
        kinds.append("dialogue")
    return kinds


def _opt_str(raw: Dict[str, Any], key: str, line: int) -> Optional[str]:
    val = raw.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise InvalidDirective(f"'{key}' must be a string", line, repr(raw))
    return val


def parse_line(raw: Any, line: int = 0) -> LineDirective:
    """Turn one JSON line object into a directive.

    ``line`` is the 1-based position inside the scene, used for error messages.
    """
    if not isinstance(raw, dict):
        raise InvalidDirective("line must be an object", line, repr(raw))
    kinds = _line_kinds(raw)
    if len(kinds) > 1:
        raise InvalidDirective(f"conflicting directives: {', '.join(kinds)}", line, repr(raw))
    if "loops" in raw and kinds != ["audio"]:
        raise InvalidDirective("'loops' is only valid with 'audio'", line, repr(raw))
    kind = kinds[0] if kinds else "dialogue"

    if kind == "clear":
        return Clear()
    if kind == "stopAudio":
        return AudioStop()
    if kind == "shake":
        val = raw.get("shake")
        # bool is an int subclass; reject it explicitly
        if isinstance(val, bool) or not isinstance(val, int):
            raise InvalidDirective("'shake' must be an integer", line, repr(raw))
        return Shake(intensity=val)
    if kind == "audio":
        path = _opt_str(raw, "audio", line)
        loops = raw.get("loops", 1)
        if isinstance(loops, bool) or not isinstance(loops, int) or loops == 0 or loops < -1:
            raise InvalidDirective("'loops' must be -1 or a positive integer", line, repr(raw))
        return AudioPlay(path=path or "", loop_count=loops)

    text = raw.get("text", "")
    if text is None:
        text = ""
    pos = _opt_str(raw, "pos", line)
    if pos is not None and pos not in POSITIONS:
        raise InvalidDirective(f"unknown position: {pos}", line, repr(raw))
    return Dialogue(
        text=str(text),
        background=_opt_str(raw, "bg", line) or None,
        character=_opt_str(raw, "char", line),
        position=pos,
    )


def parse_scene(data: Any, file_id: str) -> SceneScript:
    """Validate a decoded scene document ``{"lines": [...]}``."""
    if not isinstance(data, dict):
        raise ContentMissing("scene document must be an object", context=file_id)
    lines = data.get("lines")
    if lines is None:
        lines = []
    if not isinstance(lines, list):
        raise ContentMissing("'lines' must be a list", context=file_id)
    directives = []
    for idx, raw in enumerate(lines):
        try:
            directives.append(parse_line(raw, idx + 1))
        except InvalidDirective as e:
            e.context = f"{file_id}: {e.context}" if e.context else file_id
            raise
    return SceneScript(file_id=file_id, lines=tuple(directives))


def parse_scene_source(source: str, file_id: str) -> SceneScript:
    try:
        data = json.loads(source)
    except ValueError as e:
        raise ContentMissing(f"invalid JSON: {e}", context=file_id) from e
    return parse_scene(data, file_id)


def parse_scene_index(data: Any) -> SceneIndex:
    """Validate a decoded scene index ``{"01": ["01_001.json", ...]}``."""
    if not isinstance(data, dict):
        raise ContentMissing("scene index must be an object")
    mapping: Dict[str, List[str]] = {}
    for key, files in data.items():
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise ContentMissing(f"chapter {key!r} must list scene file names")
        mapping[str(key)] = list(files)
    return SceneIndex(mapping)
