"""
Cache adapter for network-bound enrichment results.

The adapter puts TTL semantics on top of any backing store exposing
get(key) / set(key, value), sync or async.  Two stores ship with the package:

- MemoryStore: process-local dict, the default
- FileStore: one JSON file per key, survives restarts and can be audited by hand
"""

import asyncio
import hashlib
import inspect
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

from .exceptions import StoreError
from .logger import get_module_logger

logger = get_module_logger("cache")


class MemoryStore:
    """In-process dict store."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> int:
        count = len(self._data)
        self._data.clear()
        return count


class FileStore:
    """
    File-based store.

    Values are written as JSON files in a cache directory, named by the md5
    of the key so arbitrary URLs map to safe filenames.
    """

    def __init__(self, cache_dir: Optional[str] = None):
        if cache_dir is None:
            cache_dir = Path.cwd() / "embed_cache"

        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"File cache initialized at: {self.cache_dir}")

    def _path(self, key: str) -> Path:
        digest = hashlib.md5(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def _read(self, key: str) -> Optional[Any]:
        cache_file = self._path(key)
        if not cache_file.exists():
            return None
        data = json.loads(cache_file.read_text())
        return data["value"]

    def _write(self, key: str, value: Any) -> None:
        # Write beside the target, then rename: readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as tmp:
                json.dump({"key": key, "value": value}, tmp, indent=2)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)

    def delete(self, key: str) -> bool:
        cache_file = self._path(key)
        if cache_file.exists():
            cache_file.unlink()
            return True
        return False

    def clear(self) -> int:
        """Clear all cached entries. Returns count of deleted files."""
        count = 0
        for cache_file in self.cache_dir.glob("*.json"):
            cache_file.unlink()
            count += 1
        logger.info(f"Cleared {count} cached entries")
        return count


class CacheAdapter:
    """
    Uniform get/set with TTL over an arbitrary backing store.

    Entries are stored as dicts stamped with a "timestamp" (epoch seconds).
    Any exception raised by the store is re-raised as StoreError.
    """

    def __init__(
        self,
        store: Any = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time
    ):
        self.store = store if store is not None else MemoryStore()
        self.ttl = ttl
        self.clock = clock

    async def get(self, key: str, ttl: Optional[float] = None) -> Optional[dict]:
        """
        Fetch a fresh entry.

        Returns:
            The stored entry dict, or None when missing or older than ttl
        """
        try:
            entry = self.store.get(key)
            if inspect.isawaitable(entry):
                entry = await entry
        except Exception as e:
            raise StoreError(f"Cache read failed for {key}: {e}", key=key, operation="get") from e

        if not entry:
            logger.debug(f"Cache miss for key: {key}")
            return None

        ttl = ttl if ttl is not None else self.ttl
        timestamp = entry.get("timestamp") if isinstance(entry, dict) else None
        if ttl is not None and (timestamp is None or self.clock() - timestamp > ttl):
            logger.debug(f"Cache entry expired for key: {key}")
            return None

        logger.debug(f"Cache hit for key: {key}")
        return entry

    async def set(self, key: str, value: dict) -> None:
        """Store value stamped with the current time."""
        entry = {**value, "timestamp": self.clock()}
        try:
            result = self.store.set(key, entry)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise StoreError(f"Cache write failed for {key}: {e}", key=key, operation="set") from e


# Process-wide default, shared by pipelines that aren't given a cache
_default_cache: Optional[CacheAdapter] = None


def get_default_cache() -> CacheAdapter:
    """Get or create the default cache instance."""
    global _default_cache
    if _default_cache is None:
        _default_cache = CacheAdapter(MemoryStore())
    return _default_cache
