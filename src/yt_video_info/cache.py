"""
cache.py — In-memory key/value cache with per-entry expiry.

Entries expire lazily: get() and has() evict an expired entry as a side
effect, and cleanup() sweeps everything that has expired.  There is no
size bound; growth is limited only by TTL eviction, which is fine for a
low-traffic, process-lifetime tool.

Two process-wide instances are created at import time and handed to
VideoInfoService by default:

    video_info_cache   keyed by video ID,               1 hour TTL
    transcript_cache   keyed by caption track base URL, 2 hour TTL
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from yt_video_info.metadata import VideoInfo
    from yt_video_info.transcript import Transcript

V = TypeVar("V")

VIDEO_INFO_TTL_SECONDS = 3600
TRANSCRIPT_TTL_SECONDS = 7200


@dataclass
class CacheEntry(Generic[V]):
    value: V
    # Wall-clock epoch seconds (float, so millisecond precision is kept).
    expiry: float


class Cache(Generic[V]):
    """
    String-keyed TTL cache.

    Every operation holds a lock, so the expiry check and the eviction in
    get() happen atomically with respect to a concurrent set() of the same
    key.  The lock is a plain threading.Lock: critical sections never await,
    so it is safe to use from asyncio code as well as from threads.

    Args:
        default_ttl_seconds: Expiry window used when set() gets no TTL.
        clock:               Returns "now" in epoch seconds.  Tests inject
                             a fake clock to simulate time passing.
    """

    def __init__(
        self,
        default_ttl_seconds: float = VIDEO_INFO_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        """Return the cached value, or None if unknown or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expiry:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: V, ttl_seconds: float | None = None) -> None:
        """Store value under key, replacing any existing entry."""
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expiry=self._clock() + ttl)

    def has(self, key: str) -> bool:
        """True if key holds an unexpired entry (even one whose value is None)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expiry:
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        """Number of stored entries, counting expired ones not yet evicted."""
        with self._lock:
            return len(self._entries)

    def cleanup(self) -> int:
        """
        Remove every expired entry.

        Not needed for correctness (reads evict on their own); meant for
        periodic maintenance of long-running processes.

        Returns:
            How many entries were removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.expiry]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return self.size


# ---------------------------------------------------------------------------
# Process-wide instances
# ---------------------------------------------------------------------------

video_info_cache: Cache[VideoInfo] = Cache(VIDEO_INFO_TTL_SECONDS)
transcript_cache: Cache[Transcript] = Cache(TRANSCRIPT_TTL_SECONDS)
