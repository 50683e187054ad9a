"""Narrow cache boundary: storage backends live outside this package."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Optional, Protocol

from .model import ResolvedFeed, dumps, loads

if TYPE_CHECKING:
    from .main import FeedEngine

logger = logging.getLogger(__name__)


class FeedCache(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


class MemoryCache:
    """Process-local FeedCache backed by a dict."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


def cached_parse(
    engine: FeedEngine, text: str, cache: FeedCache, key: str, **options: Any
) -> ResolvedFeed:
    """Return the cached feed for ``key``, parsing ``text`` and storing it on a miss."""
    payload = cache.get(key)
    if payload is not None:
        logger.debug("Feed cache hit for %s", key)
        return loads(payload)

    feed = engine.parse(text, **options)
    cache.set(key, dumps(feed))
    return feed
