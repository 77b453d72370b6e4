from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from ..asset_cache import AssetLoadFailure


class IAudio(ABC):
    """Audio backend used by the cue player.

    ``loops`` follows pygame: 0 plays once, -1 loops forever.
    """

    @abstractmethod
    def load(self, path: str) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def play(self, clip: Any, loops: int = 0) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def stop(self, clip: Any) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def length_ms(self, clip: Any) -> int:  # pragma: no cover - interface
        raise NotImplementedError


class NullAudio(IAudio):
    """Silent backend for headless runs; every clip has zero length."""

    def load(self, path: str) -> Any:
        return path

    def play(self, clip: Any, loops: int = 0) -> None:
        pass

    def stop(self, clip: Any) -> None:
        pass

    def length_ms(self, clip: Any) -> int:
        return 0


class PygameAudio(IAudio):
    """pygame.mixer backend; clips are ``pygame.mixer.Sound`` objects."""

    def __init__(self, resolve_path: Callable[[str], str]) -> None:
        self._resolve = resolve_path

    def _ensure_mixer(self) -> None:
        import pygame

        if not pygame.mixer.get_init():
            pygame.mixer.init()

    def load(self, path: str) -> Any:
        import pygame

        try:
            self._ensure_mixer()
            return pygame.mixer.Sound(self._resolve(path))
        except (pygame.error, FileNotFoundError, OSError) as e:
            raise AssetLoadFailure(path, str(e)) from e

    def play(self, clip: Any, loops: int = 0) -> None:
        clip.play(loops=loops)

    def stop(self, clip: Any) -> None:
        clip.stop()

    def length_ms(self, clip: Any) -> int:
        return int(round(clip.get_length() * 1000))
