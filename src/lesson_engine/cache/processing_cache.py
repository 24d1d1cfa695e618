"""In-memory cache of processed lesson content.

Entries are keyed by (lesson id, processing options) and carry a TTL.
An expired entry reads as a miss but is NOT removed by ``get``; removal is
done only by the eviction manager (``purge_expired`` / ``evict_oldest``).

Default TTL: CACHE_TTL_SECONDS (24 hours)
Storage: process memory, no inherent size bound
"""

import hashlib
import threading
import time
from typing import Callable, Dict, List, Optional

from loguru import logger

from constants import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS
from lesson_engine.models.processing import ProcessedLessonContent, ProcessingOptions
from lesson_engine.models.storage import CacheEntry, CacheStats, estimate_size


class ProcessingCache:
    """Thread-safe TTL cache for pipeline output."""

    DEFAULT_TTL_SECONDS = CACHE_TTL_SECONDS

    def __init__(
        self,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize processing cache.

        Args:
            default_ttl_seconds: TTL used when ``put`` gets none (default: 24h)
            enabled: Whether caching is enabled (default: True)
            clock: Time source in epoch seconds (injectable for tests)
        """
        self.enabled = enabled
        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = CACHE_MAX_ENTRIES
        self.clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _generate_cache_key(self, lesson_id: str, options: ProcessingOptions) -> str:
        """Generate cache key from lesson id and serialized options.

        Returns:
            Cache key as hex digest
        """
        key_data = f"{lesson_id}:{options.cache_key()}"
        return hashlib.sha256(key_data.encode("utf-8")).hexdigest()

    def get(self, lesson_id: str, options: ProcessingOptions) -> Optional[ProcessedLessonContent]:
        """Get cached content if present and not expired.

        Returns:
            Cached content or None on miss/expiry
        """
        if not self.enabled:
            return None

        cache_key = self._generate_cache_key(lesson_id, options)
        with self._lock:
            entry = self._entries.get(cache_key)

        if entry is None:
            return None

        if entry.is_expired(self.clock()):
            logger.debug(f"Cache entry expired for lesson: {lesson_id}")
            return None

        logger.debug(f"Cache hit for lesson: {lesson_id}")
        return entry.content

    def put(
        self,
        lesson_id: str,
        options: ProcessingOptions,
        content: ProcessedLessonContent,
        ttl_seconds: Optional[int] = None,
    ) -> Optional[CacheEntry]:
        """Store processed content.

        Args:
            lesson_id: Lesson identity
            options: Options the content was produced with
            content: Processed content
            ttl_seconds: Time-to-live (default: cache default TTL)

        Returns:
            The stored entry, or None when caching is disabled
        """
        if not self.enabled:
            return None

        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self.clock()
        entry = CacheEntry(
            key=self._generate_cache_key(lesson_id, options),
            lesson_id=lesson_id,
            options_key=options.cache_key(),
            content=content,
            cached_at=now,
            expires_at=now + ttl,
            size=estimate_size(content),
        )

        with self._lock:
            self._entries[entry.key] = entry

        return entry

    def purge_expired(self, now: Optional[float] = None) -> List[CacheEntry]:
        """Remove and return every expired entry."""
        now = self.clock() if now is None else now
        with self._lock:
            expired = [entry for entry in self._entries.values() if entry.is_expired(now)]
            for entry in expired:
                del self._entries[entry.key]

        if expired:
            logger.info(f"Purged {len(expired)} expired processing cache entries")
        return expired

    def evict_oldest(self, max_entries: int) -> List[CacheEntry]:
        """Remove the oldest entries (by cached_at) until at most ``max_entries`` remain."""
        with self._lock:
            self.max_entries = max_entries
            overflow = len(self._entries) - max_entries
            if overflow <= 0:
                return []
            ordered = sorted(self._entries.values(), key=lambda e: e.cached_at)
            evicted = ordered[:overflow]
            for entry in evicted:
                del self._entries[entry.key]

        logger.info(f"Evicted {len(evicted)} oldest processing cache entries (max={max_entries})")
        return evicted

    def invalidate(self, lesson_id: str) -> int:
        """Drop every entry for a lesson, whatever its options. Returns count removed."""
        with self._lock:
            keys = [key for key, entry in self._entries.items() if entry.lesson_id == lesson_id]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._entries = {}
        logger.info("Processing cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        now = self.clock()
        with self._lock:
            entries = list(self._entries.values())

        return CacheStats(
            total_entries=len(entries),
            expired_entries=sum(1 for entry in entries if entry.is_expired(now)),
            total_size=sum(entry.size for entry in entries),
            oldest_cached_at=min((e.cached_at for e in entries), default=None),
            newest_cached_at=max((e.cached_at for e in entries), default=None),
            max_entries=self.max_entries,
            default_ttl_seconds=self.default_ttl_seconds,
        )
