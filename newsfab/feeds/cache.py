"""
HTTP response cache shared by all fetch tasks.

Stores the last successful response per URL together with its
validators (ETag, Last-Modified) and freshness lifetime, so that
repeat fetches can be served locally or revalidated with a
conditional request.

Provides:
- CachedResponse: One stored response
- ResponseCache: Interface implemented by the stores below
- MemoryResponseCache: In-process store (tests, --no-cache runs)
- DiskResponseCache: One JSON file per key under a cache directory

Both stores take a per-key asyncio lock so concurrent fetch tasks
never interleave reads and writes of the same entry.
"""

import asyncio
import base64
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, TypeVar

from newsfab.publishing.publisher import atomic_write_bytes

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cache_key(url: str) -> str:
    """Content key for a URL: full SHA-256 hex digest."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CachedResponse:
    """A stored response body and the headers needed to reuse it."""

    url: str
    body: bytes
    etag: str | None = None
    last_modified: str | None = None
    expires_at: float | None = None  # wall-clock epoch seconds
    stored_at: float = 0.0

    def is_fresh(self, now: float | None = None) -> bool:
        """True while the response may be served without revalidation."""
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now < self.expires_at

    @property
    def has_validators(self) -> bool:
        return bool(self.etag or self.last_modified)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["body"] = base64.b64encode(self.body).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedResponse":
        return cls(
            url=data["url"],
            body=base64.b64decode(data["body"]),
            etag=data.get("etag"),
            last_modified=data.get("last_modified"),
            expires_at=data.get("expires_at"),
            stored_at=data.get("stored_at", 0.0),
        )
class ResponseCache(ABC):
    """
    Abstract response store.

    Subclasses implement the unlocked _load/_store/_remove primitives;
    the public methods serialize access per key. Stores doing file I/O
    set `blocking` so the primitives run in a worker thread instead of
    on the event loop.
    """

    blocking = False

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock(self, key: str) -> asyncio.Lock:
        """Lock guarding a single key."""
        return self._locks[key]

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        if self.blocking:
            return await asyncio.to_thread(func, *args)
        return func(*args)

    async def get(self, key: str) -> CachedResponse | None:
        async with self.lock(key):
            return await self._call(self._load, key)

    async def put(self, key: str, response: CachedResponse) -> None:
        async with self.lock(key):
            await self._call(self._store, key, response)

    async def delete(self, key: str) -> None:
        async with self.lock(key):
            await self._call(self._remove, key)

    @abstractmethod
    def _load(self, key: str) -> CachedResponse | None: ...

    @abstractmethod
    def _store(self, key: str, response: CachedResponse) -> None: ...

    @abstractmethod
    def _remove(self, key: str) -> None: ...


class MemoryResponseCache(ResponseCache):
    """Dictionary-backed cache. Contents are lost when the process exits."""

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, CachedResponse] = {}

    def _load(self, key: str) -> CachedResponse | None:
        return self._entries.get(key)

    def _store(self, key: str, response: CachedResponse) -> None:
        self._entries[key] = response

    def _remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class DiskResponseCache(ResponseCache):
    """
    Directory-backed cache, one `<key>.json` file per entry.

    Files are replaced atomically. Unreadable or corrupt files are
    treated as misses and removed. File access runs in a worker thread.
    """

    blocking = True

    def __init__(self, directory: str | Path) -> None:
        super().__init__()
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def _load(self, key: str) -> CachedResponse | None:
        path = self._path(key)
        try:
            with open(path, encoding="utf-8") as f:
                return CachedResponse.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry {path.name}: {e}")
            path.unlink(missing_ok=True)
            return None

    def _store(self, key: str, response: CachedResponse) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(response.to_dict()).encode("utf-8")
        atomic_write_bytes(self._path(key), payload)

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
