"""
Snapshot Store - numbered save slots on top of the key-value store

Record layout (one JSON document per slot, key ``vnSave_<n>``):

    {
      "timestamp": <epoch ms>,
      "gameState": {"currentChapter", "currentSceneIndex", "lineIndex", "charCount", "autoSpeed"},
      "uiState":   {"backgroundImage", "characterImage", "characterPosition", "textContent", "currentText"}
    }

Storage problems never raise out of this module: saves and deletes report
False, loads report an empty slot.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import time

from .adapters.storage import IKeyValueStore, StorageFailure

logger = logging.getLogger(__name__)

SLOT_KEY_PREFIX = "vnSave_"
DEFAULT_MAX_SLOTS = 5
DEFAULT_PREVIEW = "In progress"
PREVIEW_LIMIT = 50

_CURSOR_KEYS = ("currentChapter", "currentSceneIndex", "lineIndex", "charCount", "autoSpeed")


def slot_key(slot: int) -> str:
    return f"{SLOT_KEY_PREFIX}{slot}"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RenderSummary:
    """What the screen looked like when the slot was written."""
    background: Optional[str] = None
    character: Optional[str] = None
    character_position: str = "center"
    text_lines: List[str] = field(default_factory=list)
    preview_text: str = DEFAULT_PREVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backgroundImage": self.background,
            "characterImage": self.character,
            "characterPosition": self.character_position,
            "textContent": list(self.text_lines),
            "currentText": self.preview_text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenderSummary":
        lines = data.get("textContent") or []
        if isinstance(lines, str):
            lines = lines.splitlines()
        return cls(
            background=data.get("backgroundImage") or None,
            character=data.get("characterImage") or None,
            character_position=data.get("characterPosition") or "center",
            text_lines=[str(s) for s in lines],
            preview_text=data.get("currentText") or DEFAULT_PREVIEW,
        )

    def to_snapshot(self) -> Dict[str, Any]:
        """Shape accepted by ``IRenderSurface.apply_snapshot``."""
        return {
            "bg": self.background,
            "char": self.character,
            "pos": self.character_position,
            "lines": list(self.text_lines),
        }

    @classmethod
    def from_snapshot(cls, snap: Dict[str, Any], preview_text: Optional[str] = None) -> "RenderSummary":
        return cls(
            background=snap.get("bg"),
            character=snap.get("char"),
            character_position=snap.get("pos") or "center",
            text_lines=list(snap.get("lines") or []),
            preview_text=preview_text or DEFAULT_PREVIEW,
        )


@dataclass
class SaveSlot:
    slot: int
    created_at: int
    cursor: Dict[str, Any]
    render: RenderSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.created_at,
            "gameState": dict(self.cursor),
            "uiState": self.render.to_dict(),
        }


@dataclass
class SlotMeta:
    """Lightweight slot listing entry."""
    slot: int
    timestamp: int
    preview_text: str = DEFAULT_PREVIEW

    @property
    def display_time(self) -> str:
        try:
            return datetime.fromtimestamp(self.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        except (OverflowError, OSError, ValueError):
            return str(self.timestamp)

    @property
    def short_preview(self) -> str:
        text = self.preview_text or ""
        if len(text) > PREVIEW_LIMIT:
            return text[:PREVIEW_LIMIT] + "..."
        return text


class SnapshotStore:
    def __init__(self, store: IKeyValueStore, max_slots: int = DEFAULT_MAX_SLOTS,
                 clock: Optional[Callable[[], int]] = None) -> None:
        self._store = store
        self._max_slots = max_slots
        self._clock = clock or _now_ms

    @property
    def max_slots(self) -> int:
        return self._max_slots

    def valid_slot(self, slot: Any) -> bool:
        return isinstance(slot, int) and not isinstance(slot, bool) and 1 <= slot <= self._max_slots

    def save(self, slot: int, cursor: Dict[str, Any], render: RenderSummary) -> bool:
        """Overwrite ``slot``. False when the slot number or the store is bad."""
        if not self.valid_slot(slot):
            logger.warning(f"Refusing to save to invalid slot {slot!r}")
            return False
        record = SaveSlot(
            slot=slot,
            created_at=self._clock(),
            cursor={k: cursor.get(k) for k in _CURSOR_KEYS},
            render=render,
        )
        try:
            payload = json.dumps(record.to_dict(), ensure_ascii=False)
            self._store.set(slot_key(slot), payload)
        except (StorageFailure, TypeError, ValueError) as e:
            logger.error(f"Failed to save slot {slot}: {e}")
            return False
        logger.debug(f"Saved slot {slot}")
        return True

    def load(self, slot: int) -> Optional[SaveSlot]:
        """The stored record, or None when the slot is empty or corrupt."""
        if not self.valid_slot(slot):
            return None
        try:
            raw = self._store.get(slot_key(slot))
        except StorageFailure as e:
            logger.error(f"Failed to read slot {slot}: {e}")
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            game_state = data["gameState"]
            if not isinstance(game_state, dict):
                raise ValueError("gameState is not an object")
            return SaveSlot(
                slot=slot,
                created_at=int(data.get("timestamp") or 0),
                cursor={k: game_state.get(k) for k in _CURSOR_KEYS},
                render=RenderSummary.from_dict(data.get("uiState") or {}),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Slot {slot} is corrupt: {e}")
            return None

    def describe(self, slot: int) -> Optional[SlotMeta]:
        record = self.load(slot)
        if record is None:
            return None
        return SlotMeta(slot=slot, timestamp=record.created_at, preview_text=record.render.preview_text)

    def delete(self, slot: int) -> bool:
        if not self.valid_slot(slot):
            return False
        try:
            self._store.remove(slot_key(slot))
        except StorageFailure as e:
            logger.error(f"Failed to delete slot {slot}: {e}")
            return False
        logger.debug(f"Deleted slot {slot}")
        return True

    def list_slots(self) -> List[Optional[SlotMeta]]:
        """Metadata for slots 1..max; None marks an empty slot."""
        return [self.describe(n) for n in range(1, self._max_slots + 1)]
