from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, TYPE_CHECKING
import json
import logging

if TYPE_CHECKING:
    from .adapters.storage import IKeyValueStore

logger = logging.getLogger(__name__)

AUTO_SPEED_KEY = "autoSpeed"

DEFAULTS = {
    "playback": {
        "char_limit": 200,
        "typing_speed_ms": 15,
        "fade_duration_ms": 1000,
        "background_transition_ms": 1000,
        "default_auto_speed_ms": 1500,
        "scene_transition_delay_ms": 1500,
        "skip_delay_ms": 50,
        "max_save_slots": 5,
        "frame_ms": 16,
    },
}


@dataclass
class PlaybackConfig:
    char_limit: int = 200
    typing_speed_ms: int = 15
    fade_duration_ms: int = 1000
    background_transition_ms: int = 1000
    default_auto_speed_ms: int = 1500
    scene_transition_delay_ms: int = 1500
    skip_delay_ms: int = 50
    max_save_slots: int = 5
    # opacity tween step
    frame_ms: int = 16

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PlaybackConfig":
        merged = dict(DEFAULTS["playback"])
        for k, v in dict(data or {}).items():
            if k in merged and isinstance(v, int) and not isinstance(v, bool) and v >= 0:
                merged[k] = v
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in merged.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


def _config_path(path: Optional[Path | str]) -> Path:
    if path is None:
        return Path("config.json")
    p = Path(path)
    return p / "config.json" if p.is_dir() else p


def load_config(path: Optional[Path | str] = None) -> PlaybackConfig:
    """Read ``config.json`` (a file or a directory holding one); defaults on any problem."""
    p = _config_path(path)
    try:
        if p.exists():
            data = json.loads(p.read_text(encoding="utf-8"))
            return PlaybackConfig.from_dict((data or {}).get("playback"))
    except Exception as e:
        logger.warning(f"Ignoring unreadable config {p}: {e}")
    return PlaybackConfig()


def save_config(cfg: PlaybackConfig, path: Optional[Path | str] = None) -> bool:
    p = _config_path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        data = {"playback": PlaybackConfig.from_dict(cfg.to_dict()).to_dict()}
        p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        return True
    except Exception as e:
        logger.error(f"Failed to write config {p}: {e}")
        return False


# --- player preferences (persisted through the key-value store) ---

def load_auto_speed(store: Optional["IKeyValueStore"], default: int) -> int:
    if store is None:
        return default
    try:
        raw = store.get(AUTO_SPEED_KEY)
        if raw is None:
            return default
        val = int(raw)
        return val if val >= 0 else default
    except Exception as e:
        logger.warning(f"Ignoring stored auto speed: {e}")
        return default


def save_auto_speed(store: Optional["IKeyValueStore"], ms: int) -> bool:
    if store is None:
        return False
    try:
        store.set(AUTO_SPEED_KEY, str(int(ms)))
        return True
    except Exception as e:
        logger.error(f"Failed to persist auto speed: {e}")
        return False
