"""Unit tests for library search and filtering."""

import pytest

from lesson_engine.library.search import LibrarySearchEngine, collation_key
from lesson_engine.models.lesson import Difficulty, Lesson, LessonMetadata, VocabularyItem
from lesson_engine.models.library import SearchFilters


def make_lesson(lesson_id, title, description="", category="general", difficulty="beginner",
                tags=None, minutes=10, vocabulary=None):
    return Lesson(
        id=lesson_id,
        title=title,
        description=description,
        content="你好",
        metadata=LessonMetadata(
            category=category,
            difficulty=difficulty,
            tags=tags or [],
            estimated_time=minutes,
        ),
        vocabulary=[VocabularyItem(word=w) for w in (vocabulary or [])],
    )


@pytest.fixture
def engine():
    return LibrarySearchEngine(
        [
            make_lesson("tea", "茶", "Ordering tea", category="food", tags=["drinks"], minutes=5,
                        vocabulary=["茶"]),
            make_lesson("love", "爱情", "Talking about love", category="culture",
                        difficulty="intermediate", tags=["feelings"], minutes=20),
            make_lesson("beijing", "北京", "A trip to the capital", category="travel",
                        tags=["city", "history"], minutes=30, vocabulary=["北京"]),
            make_lesson("dumplings", "饺子", "Making DUMPLINGS at home", category="food",
                        difficulty="advanced", tags=["cooking"], minutes=45),
            make_lesson("zoo", "动物园", "Animals", category="travel", tags=["city"], minutes=15),
        ]
    )


def ids(page):
    return [lesson.id for lesson in page.items]


class TestSorting:
    def test_titles_sorted_by_pinyin(self, engine):
        # ai, bei, cha, dong, jiao
        assert ids(engine.search()) == ["love", "beijing", "tea", "zoo", "dumplings"]

    def test_collation_key_case_folds(self):
        assert collation_key("Apple")[0] == collation_key("apple")[0]

    def test_mixed_scripts(self):
        titles = ["中文", "Basic", "阿姨"]
        assert sorted(titles, key=collation_key) == ["阿姨", "Basic", "中文"]


class TestTextQuery:
    def test_empty_query_matches_all(self, engine):
        assert engine.search("   ").total_count == 5

    def test_title_match(self, engine):
        assert ids(engine.search("北京")) == ["beijing"]

    def test_description_case_insensitive(self, engine):
        assert ids(engine.search("dumplings")) == ["dumplings"]
        assert ids(engine.search("TEA")) == ["tea"]

    def test_no_match(self, engine):
        page = engine.search("nothing here")
        assert page.items == []
        assert page.total_count == 0
        assert page.has_more is False


class TestFilters:
    def test_categories(self, engine):
        assert ids(engine.search(filters=SearchFilters(categories=["food"]))) == ["tea", "dumplings"]

    def test_difficulties(self, engine):
        filters = SearchFilters(difficulties=[Difficulty.INTERMEDIATE, Difficulty.ADVANCED])
        assert ids(engine.search(filters=filters)) == ["love", "dumplings"]

    def test_tags_match_any(self, engine):
        filters = SearchFilters(tags=["history", "cooking"])
        assert ids(engine.search(filters=filters)) == ["beijing", "dumplings"]

    def test_has_vocabulary(self, engine):
        assert ids(engine.search(filters=SearchFilters(has_vocabulary=True))) == ["beijing", "tea"]
        assert len(engine.search(filters=SearchFilters(has_vocabulary=False)).items) == 3

    def test_duration_range_inclusive(self, engine):
        filters = SearchFilters(min_estimated_time=15, max_estimated_time=30)
        assert ids(engine.search(filters=filters)) == ["love", "beijing", "zoo"]

    def test_empty_list_matches_everything(self, engine):
        assert engine.search(filters=SearchFilters(categories=[])).total_count == 5

    def test_filters_are_conjunctive(self, engine):
        filters = SearchFilters(categories=["travel"], tags=["city"], max_estimated_time=20)
        assert ids(engine.search("animals", filters)) == ["zoo"]


class TestPagination:
    def test_pages(self, engine):
        first = engine.search(page=1, page_size=2)
        second = engine.search(page=2, page_size=2)
        last = engine.search(page=3, page_size=2)

        assert ids(first) == ["love", "beijing"]
        assert first.has_more is True
        assert first.next_page == 2
        assert ids(second) == ["tea", "zoo"]
        assert ids(last) == ["dumplings"]
        assert last.has_more is False
        assert last.next_page is None

    @pytest.mark.parametrize("page_size", [1, 2, 3, 4, 5, 7])
    def test_has_more_iff_items_remain(self, engine, page_size):
        total = engine.search().total_count
        page = 1
        while True:
            result = engine.search(page=page, page_size=page_size)
            assert result.has_more == (page * page_size < total)
            if not result.has_more:
                break
            page += 1

    def test_page_past_end(self, engine):
        result = engine.search(page=10, page_size=2)
        assert result.items == []
        assert result.total_count == 5
        assert result.has_more is False

    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_pagination(self, engine, page, page_size):
        with pytest.raises(ValueError):
            engine.search(page=page, page_size=page_size)


class TestLibraryHelpers:
    def test_get_lesson(self, engine):
        assert engine.get_lesson("tea").title == "茶"
        assert engine.get_lesson("missing") is None

    def test_by_category(self, engine):
        assert [lesson.id for lesson in engine.by_category("travel")] == ["beijing", "zoo"]

    def test_by_difficulty(self, engine):
        assert [lesson.id for lesson in engine.by_difficulty(Difficulty.ADVANCED)] == ["dumplings"]

    def test_categories_and_tags(self, engine):
        assert engine.categories() == ["culture", "food", "travel"]
        assert engine.tags() == ["city", "cooking", "drinks", "feelings", "history"]

    def test_refresh_replaces_contents(self, engine):
        assert engine.refresh([make_lesson("only", "唯一")]) == 1
        assert len(engine) == 1
        assert engine.get_lesson("tea") is None

    def test_empty_library(self):
        engine = LibrarySearchEngine()
        assert engine.search().total_count == 0
        assert engine.by_category("food") == []
