"""Script repositories resolve scene indexes and scene files.

Two implementations:
- FileScriptRepository: ``scenes.json`` plus one JSON file per scene under a base directory
- MemoryScriptRepository: prebuilt documents, handy for tests and embedding
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from .errors import ContentMissing, ScriptError
from .model import SceneIndex, SceneScript
from .parser import parse_scene, parse_scene_index, parse_scene_source

logger = logging.getLogger(__name__)


class IScriptRepository(ABC):
    @abstractmethod
    def get_scene_index(self) -> SceneIndex:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def get_scene_script(self, file_id: str) -> SceneScript:  # pragma: no cover - interface
        raise NotImplementedError


class FileScriptRepository(IScriptRepository):
    """Reads content from a directory on disk.

    Scene file ids are paths relative to ``base_dir``. When the index file is
    missing or broken and ``fallback_index`` is given, the fallback is used instead.
    """

    def __init__(self, base_dir: Path | str, index_name: str = "scenes.json",
                 fallback_index: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._base = Path(base_dir)
        self._index_name = index_name
        self._fallback = fallback_index

    @property
    def base_dir(self) -> Path:
        return self._base

    def _resolve(self, file_id: str) -> Path:
        p = Path(file_id)
        if p.is_absolute():
            return p
        return self._base / p

    def get_scene_index(self) -> SceneIndex:
        p = self._resolve(self._index_name)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
            return parse_scene_index(data)
        except (OSError, ValueError, ScriptError) as e:
            if self._fallback is not None:
                logger.warning(f"Scene index {p} unavailable ({e}); using fallback index")
                return SceneIndex(self._fallback)
            raise ContentMissing(f"scene index unavailable: {e}", context=str(p)) from e

    def get_scene_script(self, file_id: str) -> SceneScript:
        p = self._resolve(file_id)
        try:
            source = p.read_text(encoding="utf-8")
        except OSError as e:
            raise ContentMissing(f"scene file not readable: {e}", context=file_id) from e
        return parse_scene_source(source, file_id)


class MemoryScriptRepository(IScriptRepository):
    """In-memory content: ``index`` mapping plus decoded scene documents by file id."""

    def __init__(self, index: Mapping[str, Iterable[str]], scenes: Optional[Dict[str, Any]] = None) -> None:
        self._index = {k: list(v) for k, v in index.items()}
        self._scenes: Dict[str, Any] = dict(scenes or {})
        self.index_loads = 0

    def add_scene(self, file_id: str, document: Any) -> None:
        self._scenes[file_id] = document

    def get_scene_index(self) -> SceneIndex:
        self.index_loads += 1
        return parse_scene_index(self._index)

    def get_scene_script(self, file_id: str) -> SceneScript:
        if file_id not in self._scenes:
            raise ContentMissing("scene file not found", context=file_id)
        return parse_scene(self._scenes[file_id], file_id)
