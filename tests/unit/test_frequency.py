"""Unit tests for frequency and difficulty analysis."""

import pytest

from lesson_engine.analyzers.frequency import (
    analyze,
    classify_difficulty,
    count_occurrences,
    extract_candidate_words,
)
from lesson_engine.models.lesson import Difficulty


class TestCountOccurrences:
    def test_overlapping_matches_counted(self):
        """"aa" in "aaa" counts twice: matches may overlap."""
        assert count_occurrences("aa", "aaa") == 2

    def test_chinese_word(self):
        assert count_occurrences("你好", "你好，你好！") == 2

    def test_absent_word(self):
        assert count_occurrences("再见", "你好") == 0

    def test_empty_word(self):
        assert count_occurrences("", "你好") == 0


class TestClassifyDifficulty:
    def test_frequent_single_character_is_beginner(self):
        text = "我的书的笔的桌子的椅子的"
        assert analyze("的", text) == (5, Difficulty.BEGINNER)

    def test_rare_four_character_word_is_advanced(self):
        assert analyze("不好意思", "不好意思，我迟到了。") == (1, Difficulty.ADVANCED)

    @pytest.mark.parametrize(
        "word,frequency,expected",
        [
            ("好", 3, Difficulty.BEGINNER),
            ("好", 2, Difficulty.BEGINNER),
            ("好", 1, Difficulty.INTERMEDIATE),
            ("你好", 2, Difficulty.BEGINNER),
            ("你好", 1, Difficulty.INTERMEDIATE),
            ("怎么样", 9, Difficulty.INTERMEDIATE),
            ("什么时候", 9, Difficulty.ADVANCED),
        ],
    )
    def test_heuristic(self, word, frequency, expected):
        assert classify_difficulty(word, frequency) == expected


class TestExtractCandidateWords:
    def test_windows_in_first_seen_order(self):
        assert extract_candidate_words("你好！") == ["你", "你好", "好"]

    def test_duplicates_removed(self):
        assert extract_candidate_words("好好") == ["好", "好好"]

    def test_windows_do_not_cross_runs(self):
        words = extract_candidate_words("你好，世界")
        assert "好世" not in words
        assert words == ["你", "你好", "好", "世", "世界", "界"]

    def test_non_chinese_ignored(self):
        assert extract_candidate_words("hello 123") == []
