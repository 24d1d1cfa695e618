"""Dictionary and pattern based Chinese word segmentation.

The segmentation is deliberately approximate: longest-match lookup against a
small fixed dictionary, then character-class heuristics. It is deterministic
and total, so it doubles as the fallback for any alternate tokenizer.
"""

from typing import FrozenSet, List, Optional, Tuple

from lesson_engine.models.processing import Token, TokenKind
from lesson_engine.utils.characters import (
    is_ascii_digit,
    is_cjk,
    is_latin_letter,
    is_particle,
    is_punctuation,
)

MAX_WORD_LENGTH = 8
MIN_WORD_LENGTH = 2

DEFAULT_DICTIONARY: FrozenSet[str] = frozenset([
    # Common 2-character words
    "你好", "我们", "什么", "可以", "已经", "没有", "不是", "这个", "那个", "他们", "她们", "时候",
    "因为", "所以", "但是", "如果", "然后", "现在", "今天", "明天", "昨天", "一些", "很多", "不会",
    "喜欢", "觉得", "希望", "应该", "可能", "还是", "或者", "虽然", "除了", "为了", "对于", "关于",
    "怎么", "哪里", "谁的", "多少", "几个",
    # Common 3-character words
    "怎么样", "为什么", "在哪里", "做什么", "有什么", "说什么", "去哪里", "买什么",
    "中国人", "美国人", "英国人", "日本人", "德国人", "法国人",
    "北京市", "上海市", "广州市", "深圳市", "天津市", "重庆市", "南京市", "杭州市",
    # 4+ character words and phrases
    "什么时候", "意大利人", "西班牙人", "怎么回事", "没关系的", "不好意思", "谢谢你的", "对不起我",
    "很高兴认识",
])


class RuleBasedTokenizer:
    """Longest-match dictionary tokenizer with character-class heuristics."""

    name = "rule_based"

    def __init__(
        self,
        dictionary: Optional[FrozenSet[str]] = None,
        max_word_length: int = MAX_WORD_LENGTH,
    ):
        self.dictionary = DEFAULT_DICTIONARY if dictionary is None else frozenset(dictionary)
        self.max_word_length = max_word_length

    def tokenize(self, text: str) -> List[Token]:
        """Split text into ordered tokens.

        Never fails: any character that matches no rule becomes a
        single-character token. Whitespace-only spans are dropped.

        Args:
            text: Raw lesson text

        Returns:
            Tokens in source order with offsets into ``text``

        Example:
            >>> [t.text for t in RuleBasedTokenizer().tokenize("你好，世界！")]
            ['你好', '，', '世界', '！']
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            length, kind = self._next_span(text, position)
            span = text[position:position + length]
            if span.strip():
                tokens.append(
                    Token(
                        id=f"tok-{len(tokens) + 1:03d}",
                        text=span,
                        start=position,
                        end=position + length,
                        kind=kind,
                    )
                )
            position += length

        return tokens

    def _next_span(self, text: str, position: int) -> Tuple[int, TokenKind]:
        """Length (always >= 1) and kind of the token starting at ``position``."""
        matched = self._dictionary_match(text, position)
        if matched:
            return matched, TokenKind.WORD

        char = text[position]

        if is_cjk(char):
            if position + 1 < len(text):
                next_char = text[position + 1]
                if (
                    is_cjk(next_char)
                    and not is_punctuation(next_char)
                    and not is_particle(char)
                    and not is_particle(next_char)
                ):
                    return 2, TokenKind.WORD
            return 1, TokenKind.WORD

        if is_latin_letter(char):
            end = position
            while end < len(text) and is_latin_letter(text[end]):
                end += 1
            return end - position, TokenKind.LATIN_RUN

        if is_ascii_digit(char):
            end = position
            while end < len(text):
                current = text[end]
                if is_ascii_digit(current):
                    end += 1
                elif current in ".," and end + 1 < len(text) and is_ascii_digit(text[end + 1]):
                    end += 1
                else:
                    break
            return end - position, TokenKind.DIGIT_RUN

        return 1, TokenKind.PUNCTUATION

    def _dictionary_match(self, text: str, position: int) -> int:
        """Length of the longest dictionary word at ``position``, or 0."""
        longest = min(self.max_word_length, len(text) - position)
        for length in range(longest, MIN_WORD_LENGTH - 1, -1):
            if text[position:position + length] in self.dictionary:
                return length
        return 0


_default_tokenizer = RuleBasedTokenizer()


def tokenize(text: str) -> List[Token]:
    """Tokenize with the default dictionary. See RuleBasedTokenizer.tokenize."""
    return _default_tokenizer.tokenize(text)


def tokenize_strings(text: str) -> List[str]:
    """Token texts only, in order."""
    return [token.text for token in tokenize(text)]


def classify_span(text: str) -> TokenKind:
    """Token kind for an externally produced span, judged by its first character."""
    stripped = text.strip()
    if not stripped:
        return TokenKind.PUNCTUATION
    first = stripped[0]
    if is_cjk(first):
        return TokenKind.WORD
    if is_latin_letter(first):
        return TokenKind.LATIN_RUN
    if is_ascii_digit(first):
        return TokenKind.DIGIT_RUN
    return TokenKind.PUNCTUATION
