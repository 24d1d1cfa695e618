"""Unit tests for the durable store and its backends.

Every contract test runs against both the SQLite and the flat-file backend.
"""

import sqlite3
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from lesson_engine.errors import StorageQuotaExceeded
from lesson_engine.models.lesson import Lesson, LessonMetadata
from lesson_engine.models.processing import ProcessedLessonContent
from lesson_engine.models.storage import ProgressRecord
from lesson_engine.storage.backends import FileBackend, SqliteBackend, select_backend
from lesson_engine.storage.offline_store import DurableStore

FIXED_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        self.now += 1
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_lesson(lesson_id, content="你好，世界！"):
    return Lesson(
        id=lesson_id,
        title=f"Lesson {lesson_id}",
        content=content,
        metadata=LessonMetadata(created_at=FIXED_TIME, updated_at=FIXED_TIME),
    )


@pytest.fixture(params=["sqlite", "file"])
def backend(request, tmp_path):
    if request.param == "sqlite":
        return SqliteBackend(tmp_path / "lessons.db")
    return FileBackend(tmp_path / "records")


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(backend, clock):
    return DurableStore(backend=backend, capacity_bytes=10_000_000, low_water_mark_bytes=0, clock=clock)


class TestLessonRecords:
    def test_store_and_get(self, store):
        lesson = make_lesson("greetings")

        record = store.store(lesson)
        loaded = store.get("greetings")

        assert loaded is not None
        assert loaded.to_lesson() == lesson
        assert loaded.size == record.size > 0
        assert loaded.processed is None

    def test_store_with_processed_content(self, store):
        processed = ProcessedLessonContent(lesson_id="greetings", tokens=[], total_tokens=0)

        store.store(make_lesson("greetings"), processed)

        assert store.get("greetings").processed == processed

    def test_get_missing(self, store):
        assert store.get("missing") is None

    def test_get_all_oldest_first(self, store):
        for lesson_id in ["b", "a", "c"]:
            store.store(make_lesson(lesson_id))

        assert [record.id for record in store.get_all()] == ["b", "a", "c"]

    def test_replace_does_not_double_count(self, store):
        store.store(make_lesson("greetings"))
        used = store.quota().used

        store.store(make_lesson("greetings"))

        assert store.quota().used == used
        assert store.lesson_count() == 1

    def test_delete_removes_progress(self, store):
        store.store(make_lesson("greetings"))
        store.store_progress(ProgressRecord(lesson_id="greetings", completed=True, score=0.9))

        assert store.delete("greetings") is True
        assert store.get("greetings") is None
        assert store.get_progress("greetings") is None
        assert store.delete("greetings") is False

    def test_clear_all(self, store):
        store.store(make_lesson("a"))
        store.cache_data("k", {"v": 1})

        store.clear_all()

        assert store.get_all() == []
        assert store.quota().used == 0


class TestProgressAndCachedData:
    def test_progress_round_trip(self, store):
        progress = ProgressRecord(lesson_id="greetings", attempts=3, time_spent=120.5)

        store.store_progress(progress)

        assert store.get_progress("greetings") == progress

    def test_cached_data(self, store):
        store.cache_data("manifest", {"lessons": ["a", "b"]}, ttl_seconds=60)
        assert store.get_cached_data("manifest") == {"lessons": ["a", "b"]}

    def test_expired_cached_data_is_miss_until_cleanup(self, store, backend, clock):
        store.cache_data("manifest", [1, 2, 3], ttl_seconds=10)
        clock.advance(60)

        assert store.get_cached_data("manifest") is None
        assert backend.count("cache") == 1

        assert store.cleanup() > 0
        assert backend.count("cache") == 0

    def test_remove_cached_data(self, store):
        store.cache_data("k", "v")
        assert store.remove_cached_data("k") is True
        assert store.get_cached_data("k") is None


class TestQuota:
    def test_quota_accounting(self, store):
        assert store.quota().used == 0

        store.store(make_lesson("a"))
        quota = store.quota()

        assert quota.used > 0
        assert quota.total == 10_000_000
        assert quota.used + quota.available == quota.total

    def test_default_capacity_per_backend(self, tmp_path):
        assert DurableStore(SqliteBackend(tmp_path / "db.sqlite")).capacity_bytes == 50 * 1024 * 1024
        assert DurableStore(FileBackend(tmp_path / "files")).capacity_bytes == 5 * 1024 * 1024

    def test_quota_exceeded(self, backend, clock):
        store = DurableStore(backend=backend, capacity_bytes=100, low_water_mark_bytes=0, clock=clock)

        with pytest.raises(StorageQuotaExceeded) as exc_info:
            store.store(make_lesson("too-big", content="你好" * 100))

        assert exc_info.value.code == "STORAGE_QUOTA_EXCEEDED"
        assert exc_info.value.required > exc_info.value.available
        assert store.get("too-big") is None

    def test_full_store_write_evicts_then_succeeds(self, backend, clock):
        """A write that does not fit triggers one cleanup, which frees room."""
        sizing = DurableStore(backend=backend, capacity_bytes=10_000_000, clock=clock)
        for i in range(4):
            sizing.store(make_lesson(f"lesson-{i}"))
        used = sizing.quota().used

        store = DurableStore(
            backend=backend,
            capacity_bytes=used + 10,
            low_water_mark_bytes=10_000_000,
            clock=clock,
        )
        store.store(make_lesson("lesson-4"))

        ids = [record.id for record in store.get_all()]
        assert ids == ["lesson-1", "lesson-2", "lesson-3", "lesson-4"]


class TestBackendSelection:
    def test_prefers_sqlite(self, tmp_path):
        backend = select_backend(tmp_path / "lessons.db", tmp_path)
        assert backend.name == "sqlite"

    def test_falls_back_to_files(self, tmp_path):
        with patch(
            "lesson_engine.storage.backends.SqliteBackend",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            backend = select_backend(tmp_path / "lessons.db", tmp_path)

        assert backend.name == "file"
        assert (tmp_path / "records").is_dir()

    def test_sqlite_indexes_created(self, tmp_path):
        backend = SqliteBackend(tmp_path / "lessons.db")
        with backend.connect() as connection:
            names = {
                row["name"]
                for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
        assert {"idx_records_timestamp", "idx_records_expiry"} <= names
