"""Eviction of expired cache data and old lessons.

Cleanup runs in two steps:

1. Delete expired durable cache records and expired processing cache
   entries, summing their estimated sizes.
2. If available space is still below the low-water mark, delete the oldest
   25% (rounded down) of stored lessons by write timestamp.
"""

import threading
import time
from typing import TYPE_CHECKING, Callable, List, Optional

from loguru import logger

from constants import LOW_WATER_MARK_BYTES
from lesson_engine.cache.processing_cache import ProcessingCache
from lesson_engine.models.storage import CacheConfig, CacheEntry

if TYPE_CHECKING:
    from lesson_engine.storage.offline_store import DurableStore

LESSON_EVICTION_FRACTION = 0.25


class EvictionManager:
    """Reclaims durable store capacity and bounds the processing cache."""

    def __init__(
        self,
        store: "DurableStore",
        processing_cache: Optional[ProcessingCache] = None,
        low_water_mark_bytes: int = LOW_WATER_MARK_BYTES,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize eviction manager.

        Args:
            store: Durable store to reclaim space in
            processing_cache: In-memory cache whose expired entries are purged
            low_water_mark_bytes: Available space below which lessons are evicted
            clock: Time source in epoch seconds
        """
        self.store = store
        self.processing_cache = processing_cache
        self.low_water_mark_bytes = low_water_mark_bytes
        self.clock = clock
        self.cache_config: Optional[CacheConfig] = None
        self._lock = threading.Lock()

    def cleanup(self) -> int:
        """Run one eviction sweep.

        Returns:
            Estimated bytes reclaimed
        """
        with self._lock:
            now = self.clock()
            reclaimed = self.store.purge_expired_cache_data(now)

            if self.processing_cache is not None:
                purged = self.processing_cache.purge_expired(now)
                reclaimed += sum(entry.size for entry in purged)

            quota = self.store.quota()
            if quota.available < self.low_water_mark_bytes:
                lesson_count = self.store.lesson_count()
                evict_count = int(lesson_count * LESSON_EVICTION_FRACTION)
                if evict_count:
                    freed = self.store.evict_oldest_lessons(evict_count)
                    reclaimed += freed
                    logger.info(
                        f"Available space {quota.available}B below low-water mark "
                        f"{self.low_water_mark_bytes}B: evicted {evict_count}/{lesson_count} "
                        f"oldest lessons ({freed}B)"
                    )

        logger.info(f"Storage cleanup reclaimed ~{reclaimed}B")
        return reclaimed

    def set_cache_config(self, config: CacheConfig) -> List[CacheEntry]:
        """Apply a processing cache policy, evicting oldest entries over the limit.

        Returns:
            Evicted entries
        """
        self.cache_config = config
        if self.processing_cache is None:
            return []

        self.processing_cache.default_ttl_seconds = config.default_ttl_seconds
        return self.processing_cache.evict_oldest(config.max_entries)
