from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union
import os
import re


class StorageFailure(Exception):
    """The persistent store could not complete a read/write/remove."""


class IKeyValueStore(ABC):
    """String key -> string value persistence (save slots, preferences).

    Implementations raise StorageFailure when the backing medium fails;
    a missing key is not a failure (``get`` returns None).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def keys(self) -> Iterator[str]:  # pragma: no cover - interface
        return iter(())


class MemoryKeyValueStore(IKeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = str(value)

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(sorted(self.data))


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileKeyValueStore(IKeyValueStore):
    """One file per key under a base directory.

    Files: ``<key>.json``. Writes go to a temp file first and are moved into
    place, so an interrupted write never clobbers the previous value.
    """

    def __init__(self, base: Union[Path, str, Callable[[], Path]]) -> None:
        self._get_base = base if callable(base) else (lambda: Path(base))

    def _ensure_dir(self) -> Path:
        base = Path(self._get_base())
        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"cannot create {base}: {e}") from e
        return base

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key or ""):
            raise StorageFailure(f"invalid key: {key!r}")
        return self._ensure_dir() / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        try:
            if not p.exists():
                return None
            return p.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageFailure(f"cannot read {p}: {e}") from e

    def set(self, key: str, value: str) -> None:
        p = self._path(key)
        tmp = p.with_name(p.name + ".tmp")
        try:
            tmp.write_text(str(value), encoding="utf-8")
            os.replace(tmp, p)
        except OSError as e:
            try:
                if tmp.exists():
                    tmp.unlink()
            except OSError:
                pass
            raise StorageFailure(f"cannot write {p}: {e}") from e

    def remove(self, key: str) -> None:
        p = self._path(key)
        try:
            if p.exists():
                p.unlink()
        except OSError as e:
            raise StorageFailure(f"cannot remove {p}: {e}") from e

    def keys(self) -> Iterator[str]:
        base = self._ensure_dir()
        return iter(sorted(p.stem for p in base.glob("*.json")))
