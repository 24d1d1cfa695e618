"""Word frequency and difficulty analysis for lesson vocabulary.

The difficulty classification is a length/frequency heuristic, not a
linguistic judgement:

1. length 1 and frequency > 2  -> beginner
2. length <= 2 and frequency > 1 -> beginner
3. length <= 3                 -> intermediate
4. otherwise                   -> advanced
"""

from typing import List, NamedTuple

from lesson_engine.models.lesson import Difficulty
from lesson_engine.utils.characters import cjk_runs


class WordAnalysis(NamedTuple):
    frequency: int
    difficulty: Difficulty


def count_occurrences(word: str, text: str) -> int:
    """Count occurrences of ``word`` in ``text``, overlapping matches included.

    Example:
        >>> count_occurrences("aa", "aaa")
        2
    """
    if not word:
        return 0

    count = 0
    position = text.find(word)
    while position != -1:
        count += 1
        position = text.find(word, position + 1)
    return count


def classify_difficulty(word: str, frequency: int) -> Difficulty:
    length = len(word)
    if length == 1 and frequency > 2:
        return Difficulty.BEGINNER
    if length <= 2 and frequency > 1:
        return Difficulty.BEGINNER
    if length <= 3:
        return Difficulty.INTERMEDIATE
    return Difficulty.ADVANCED


def analyze(word: str, full_text: str) -> WordAnalysis:
    """Frequency of ``word`` in ``full_text`` and its heuristic difficulty."""
    frequency = count_occurrences(word, full_text)
    return WordAnalysis(frequency=frequency, difficulty=classify_difficulty(word, frequency))


def extract_candidate_words(text: str) -> List[str]:
    """Candidate vocabulary: 1- and 2-character windows over Chinese runs.

    Returns unique candidates in first-seen order.

    Example:
        >>> extract_candidate_words("你好！")
        ['你', '你好', '好']
    """
    seen = set()
    words: List[str] = []

    for run in cjk_runs(text):
        for i in range(len(run)):
            candidates = [run[i]]
            if i < len(run) - 1:
                candidates.append(run[i:i + 2])
            for candidate in candidates:
                if candidate not in seen:
                    seen.add(candidate)
                    words.append(candidate)

    return words
