from __future__ import annotations

"""Adapter interfaces and default implementations for pluggable engine backends.

Provides:
- IKeyValueStore: persistent key-value store for save slots and preferences
- IAssets: asset path resolution and image decoding
- IAudio: audio cue playback
"""

from .storage import IKeyValueStore, FileKeyValueStore, MemoryKeyValueStore, StorageFailure  # noqa: F401
from .assets import IAssets, FileSystemAssets, PygameAssets  # noqa: F401
from .audio import IAudio, NullAudio, PygameAudio  # noqa: F401
