"""
Session-scoped asset cache.

Loaded images and audio clips are kept by path for the lifetime of one play
session and dropped on exit to the menu. There is no eviction.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class AssetLoadFailure(Exception):
    """An image or audio asset could not be loaded."""

    def __init__(self, path: str, reason: str = "") -> None:
        super().__init__(f"{path}: {reason}" if reason else path)
        self.path = path
        self.reason = reason


class AssetCache:
    """
    Usage:
        cache = AssetCache(loader=assets.load_image, kind="image")
        surf = cache.load("bg/room.png")   # loads once, then reuses
        cache.clear()                      # end of session
    """

    def __init__(self, loader: Callable[[str], Any], kind: str = "asset") -> None:
        self._loader = loader
        self._kind = kind
        self._entries: Dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    def has(self, path: str) -> bool:
        return path in self._entries

    def load(self, path: str) -> Any:
        """Return the cached asset, loading it on first use.

        Failed loads are not cached, so a later retry hits the loader again.
        """
        if path in self._entries:
            self.hits += 1
            return self._entries[path]
        self.misses += 1
        try:
            asset = self._loader(path)
        except AssetLoadFailure:
            raise
        except Exception as e:
            raise AssetLoadFailure(path, str(e)) from e
        self._entries[path] = asset
        logger.debug(f"Cached {self._kind} {path}")
        return asset

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
