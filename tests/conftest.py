"""Shared fakes and builders for playback tests."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from lumenvn.engine.adapters.assets import IAssets
from lumenvn.engine.adapters.audio import IAudio
from lumenvn.engine.adapters.storage import MemoryKeyValueStore
from lumenvn.engine.asset_cache import AssetLoadFailure
from lumenvn.engine.config_io import PlaybackConfig
from lumenvn.engine.events import EventSystem
from lumenvn.engine.playback import Playback
from lumenvn.engine.renderer import HeadlessSurface
from lumenvn.engine.scheduler import Scheduler
from lumenvn.script.repository import MemoryScriptRepository


class FakeAssets(IAssets):
    """Every image loads unless listed in ``missing``."""

    def __init__(self, missing: Optional[set] = None) -> None:
        self.missing = set(missing or ())
        self.loaded: List[str] = []

    def resolve(self, path: str) -> str:
        return path

    def load_image(self, path: str) -> Any:
        if path in self.missing:
            raise AssetLoadFailure(path, "missing")
        self.loaded.append(path)
        return f"image:{path}"


class FakeAudio(IAudio):
    def __init__(self, length_ms: int = 100, broken: Optional[set] = None) -> None:
        self.length = length_ms
        self.broken = set(broken or ())
        self.loads: List[str] = []
        self.plays: List[tuple] = []
        self.stops: List[str] = []

    def load(self, path: str) -> Any:
        if path in self.broken:
            raise AssetLoadFailure(path, "cannot decode")
        self.loads.append(path)
        return path

    def play(self, clip: Any, loops: int = 0) -> None:
        self.plays.append((clip, loops))

    def stop(self, clip: Any) -> None:
        self.stops.append(clip)

    def length_ms(self, clip: Any) -> int:
        return self.length


def dialogue(text: str, **extra) -> Dict[str, Any]:
    line = {"text": text}
    line.update(extra)
    return line


def scene(*lines) -> Dict[str, Any]:
    return {"lines": list(lines)}


def make_playback(index, scenes, *, config=None, store=None, assets=None, audio=None):
    """Playback over in-memory content with a fresh scheduler and headless surface."""
    events = EventSystem()
    pb = Playback(
        Scheduler(),
        HeadlessSurface(),
        MemoryScriptRepository(index, scenes),
        store=store if store is not None else MemoryKeyValueStore(),
        config=config or PlaybackConfig(),
        events=events,
        assets=assets or FakeAssets(),
        audio=audio or FakeAudio(),
    )
    return pb


def collect(events: EventSystem, event_type) -> list:
    received: list = []
    events.subscribe(event_type, received.append)
    return received


@pytest.fixture
def three_scene_content():
    index = {"01": ["01_001.json", "01_002.json"], "02": ["02_001.json"]}
    scenes = {
        "01_001.json": scene(dialogue("Hello", bg="bg/room.png", char="ch/a.png"), dialogue("World")),
        "01_002.json": scene(),
        "02_001.json": scene(dialogue("Chapter two")),
    }
    return index, scenes
