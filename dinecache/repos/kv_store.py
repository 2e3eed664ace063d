"""
Local key/value stores backing the on-device tiers.
Values are JSON strings; callers own (de)serialization.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

from dinecache.core.logger import logs
import logging


class KeyValueStore(ABC):
    """Persistent string key/value interface used by the local tiers."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def keys(self) -> list[str]:
        ...


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store, for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileKeyValueStore(KeyValueStore):
    """One file per key under a base directory."""

    def __init__(self, base_dir: str | Path = "data/store"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logs.log(logging.INFO, f"Local key/value store initialized at {self.base_dir}")

    def _get_file(self, key: str) -> Path:
        """Get the file path for a key."""
        # Percent-encode so the key round-trips through keys()
        safe_key = quote(key, safe="")
        return self.base_dir / f"{safe_key}.json"

    async def get(self, key: str) -> Optional[str]:
        path = self._get_file(key)
        if not path.exists():
            return None
        with open(path, 'r', encoding="utf-8") as f:
            return f.read()

    async def set(self, key: str, value: str) -> None:
        path = self._get_file(key)
        # Write then rename so a crash cannot leave a half-written entry
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, 'w', encoding="utf-8") as f:
            f.write(value)
        tmp_path.replace(path)

    async def delete(self, key: str) -> None:
        self._get_file(key).unlink(missing_ok=True)

    async def keys(self) -> list[str]:
        return sorted(unquote(p.stem) for p in self.base_dir.glob("*.json"))
