"""Unit tests for the processing cache."""

import threading

import pytest

from lesson_engine.cache.processing_cache import ProcessingCache
from lesson_engine.models.processing import ProcessedLessonContent, ProcessingOptions


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Create cache instance for testing."""
    return ProcessingCache(default_ttl_seconds=60, enabled=True, clock=clock)


def make_content(lesson_id="lesson-1"):
    return ProcessedLessonContent(lesson_id=lesson_id, tokens=[], total_tokens=0)


def test_cache_initialization():
    cache = ProcessingCache()
    assert cache.enabled is True
    assert cache.default_ttl_seconds == ProcessingCache.DEFAULT_TTL_SECONDS
    assert len(cache) == 0


def test_cache_disabled(clock):
    cache = ProcessingCache(enabled=False, clock=clock)
    options = ProcessingOptions()

    assert cache.put("lesson-1", options, make_content()) is None
    assert cache.get("lesson-1", options) is None


def test_put_then_get(cache):
    options = ProcessingOptions()
    content = make_content()

    cache.put("lesson-1", options, content)

    assert cache.get("lesson-1", options) == content


def test_miss_for_unknown_key(cache):
    assert cache.get("nope", ProcessingOptions()) is None


def test_key_includes_options(cache):
    """Same lesson, different options: separate entries."""
    plain = ProcessingOptions()
    with_audio = ProcessingOptions(prepare_audio=True)

    cache.put("lesson-1", plain, make_content())

    assert cache.get("lesson-1", with_audio) is None
    assert cache.get("lesson-1", plain) is not None


def test_key_ignores_cache_controls(cache):
    cache.put("lesson-1", ProcessingOptions(cache_ttl_seconds=5), make_content())
    assert cache.get("lesson-1", ProcessingOptions(cache_results=False)) is not None


def test_expired_entry_is_miss_but_not_deleted(cache, clock):
    options = ProcessingOptions()
    cache.put("lesson-1", options, make_content(), ttl_seconds=10)

    clock.advance(10)
    assert cache.get("lesson-1", options) is not None

    clock.advance(1)
    assert cache.get("lesson-1", options) is None
    assert len(cache) == 1
    assert cache.get_stats().expired_entries == 1


def test_default_ttl(cache, clock):
    options = ProcessingOptions()
    entry = cache.put("lesson-1", options, make_content())

    assert entry.expires_at - entry.cached_at == 60


def test_purge_expired(cache, clock):
    options = ProcessingOptions()
    cache.put("old", options, make_content("old"), ttl_seconds=5)
    cache.put("fresh", options, make_content("fresh"), ttl_seconds=500)

    clock.advance(100)
    purged = cache.purge_expired()

    assert [entry.lesson_id for entry in purged] == ["old"]
    assert all(entry.size > 0 for entry in purged)
    assert len(cache) == 1


def test_evict_oldest(cache, clock):
    options = ProcessingOptions()
    for i in range(5):
        cache.put(f"lesson-{i}", options, make_content(f"lesson-{i}"))
        clock.advance(1)

    evicted = cache.evict_oldest(2)

    assert [entry.lesson_id for entry in evicted] == ["lesson-0", "lesson-1", "lesson-2"]
    assert cache.get("lesson-4", options) is not None
    assert cache.get("lesson-0", options) is None


def test_evict_oldest_under_limit(cache):
    cache.put("lesson-1", ProcessingOptions(), make_content())
    assert cache.evict_oldest(10) == []


def test_invalidate_all_options_for_lesson(cache):
    cache.put("lesson-1", ProcessingOptions(), make_content())
    cache.put("lesson-1", ProcessingOptions(prepare_audio=True), make_content())
    cache.put("lesson-2", ProcessingOptions(), make_content("lesson-2"))

    assert cache.invalidate("lesson-1") == 2
    assert len(cache) == 1


def test_clear(cache):
    cache.put("lesson-1", ProcessingOptions(), make_content())
    cache.clear()
    assert len(cache) == 0


def test_get_stats(cache, clock):
    options = ProcessingOptions()
    cache.put("a", options, make_content("a"))
    clock.advance(5)
    cache.put("b", options, make_content("b"))

    stats = cache.get_stats()

    assert stats.total_entries == 2
    assert stats.oldest_cached_at == 1_000.0
    assert stats.newest_cached_at == 1_005.0
    assert stats.total_size > 0


def test_concurrent_puts(cache):
    options = ProcessingOptions()

    def worker(n):
        for i in range(50):
            cache.put(f"lesson-{n}-{i}", options, make_content(f"lesson-{n}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 200
