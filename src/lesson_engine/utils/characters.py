"""Character classification helpers for Chinese lesson text."""

import re
from typing import List

# CJK Unified Ideographs range (most common Chinese characters)
CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]+")

PUNCTUATION = set("。！？，；：、\"'（）【】《》〈〉“”‘’…—·")

# Function words that never pair with a neighbour during segmentation
PARTICLES = {"的", "了", "着", "过", "在", "是", "有", "会", "能", "要", "想"}


def is_cjk(char: str) -> bool:
    return "\u4e00" <= char <= "\u9fff"


def is_punctuation(char: str) -> bool:
    return char in PUNCTUATION


def is_particle(char: str) -> bool:
    return char in PARTICLES


def is_latin_letter(char: str) -> bool:
    """ASCII letters plus Latin-1/Latin Extended letters (tone-marked pinyin)."""
    if "a" <= char <= "z" or "A" <= char <= "Z":
        return True
    return "\u00c0" <= char <= "\u024f" and char.isalpha()


def is_ascii_digit(char: str) -> bool:
    return "0" <= char <= "9"


def cjk_runs(text: str) -> List[str]:
    """Return maximal runs of consecutive Chinese characters, in order.

    Example:
        >>> cjk_runs("你好，世界！ok 再见")
        ['你好', '世界', '再见']
    """
    return CJK_PATTERN.findall(text)
