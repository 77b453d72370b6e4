from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..asset_cache import AssetLoadFailure


class IAssets(ABC):
    @abstractmethod
    def resolve(self, path: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def load_image(self, path: str) -> Any:  # pragma: no cover - interface
        """Decode an image; raise AssetLoadFailure when it cannot be read."""
        raise NotImplementedError


class FileSystemAssets(IAssets):
    """Resolves asset refs against a content directory.

    ``load_image`` only checks that the file exists, which is enough for
    headless playback where nothing is drawn.
    """

    def __init__(self, base: Path | str | None = None) -> None:
        self._base = Path(base) if base is not None else Path.cwd()

    def resolve(self, path: str) -> str:
        p = Path(path)
        if p.is_absolute():
            return str(p)
        return str(self._base / p)

    def exists(self, path: str) -> bool:
        try:
            return Path(self.resolve(path)).exists()
        except OSError:
            return False

    def load_image(self, path: str) -> Any:
        resolved = self.resolve(path)
        if not Path(resolved).is_file():
            raise AssetLoadFailure(path, "file not found")
        return resolved


class PygameAssets(FileSystemAssets):
    """Decodes images with pygame."""

    def __init__(self, base: Path | str | None = None, convert: Optional[bool] = None) -> None:
        super().__init__(base)
        self._convert = convert

    def load_image(self, path: str) -> Any:
        import pygame

        resolved = self.resolve(path)
        try:
            surf = pygame.image.load(resolved)
        except (pygame.error, FileNotFoundError, OSError) as e:
            raise AssetLoadFailure(path, str(e)) from e
        convert = self._convert if self._convert is not None else pygame.display.get_surface() is not None
        if convert:
            surf = surf.convert_alpha()
        return surf
