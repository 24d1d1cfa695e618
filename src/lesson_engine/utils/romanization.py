"""Romanization for Chinese lesson text.

Provides pinyin through pypinyin and a RomanizationAdapter that wraps any
romanization callable with per-call timeouts, retries and memoization.
The adapter raises AdapterFailure/RomanizationTimeout; callers decide whether
to substitute the original text.
"""

import asyncio
import inspect
import logging
import threading
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Awaitable, Callable, Dict, Optional, Tuple, Union

from pypinyin import Style, lazy_pinyin

from constants import ROMANIZATION_TIMEOUT_SECONDS
from lesson_engine.errors import AdapterFailure, RomanizationTimeout
from lesson_engine.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

RomanizeFn = Callable[[str], Union[str, Awaitable[str]]]


def get_chinese_pinyin(text: str, tone_marks: bool = True) -> str:
    """Get pinyin romanization for Chinese text.

    Uses pypinyin library to convert Chinese characters to pinyin with tone marks.
    Non-Chinese characters (punctuation, Latin, digits) are kept as-is.

    Args:
        text: Chinese text (simplified or traditional)
        tone_marks: Include tone marks (default: True)

    Returns:
        Pinyin romanization with tone marks (e.g., "yínháng" for 银行)

    Example:
        >>> get_chinese_pinyin("银行")
        'yínháng'
        >>> get_chinese_pinyin("学校")
        'xuéxiào'
    """
    style = Style.TONE if tone_marks else Style.NORMAL

    pinyin_list = lazy_pinyin(text, style=style, errors="default")

    # Join without spaces for single words, with spaces for phrases
    if len(text) <= 2:
        return "".join(pinyin_list)
    else:
        return " ".join(pinyin_list)


# POS label translation map (Chinese → English)
CHINESE_POS_MAP = {
    "名": "noun",
    "动": "verb",
    "形": "adjective",
    "副": "adverb",
    "代": "pronoun",
    "数": "numeral",
    "量": "classifier",
    "介": "preposition",
    "助": "particle",
    "叹": "interjection",
    "连": "conjunction",
    "前缀": "prefix",
    "后缀": "suffix",
    "数量": "quantity_phrase",
}


def translate_chinese_pos(chinese_pos: str) -> str:
    """Translate Chinese POS label to English.

    Args:
        chinese_pos: Chinese POS label (e.g., "名", "动", "形")

    Returns:
        English POS equivalent (e.g., "noun", "verb", "adjective")

    Example:
        >>> translate_chinese_pos("名")
        'noun'
        >>> translate_chinese_pos("量、（名）")
        'classifier'
    """
    # Handle compound POS like "名、动" or "量、（名）"
    # Take the first/primary one
    if "、" in chinese_pos:
        chinese_pos = chinese_pos.split("、")[0]

    chinese_pos = chinese_pos.strip("()（）")

    return CHINESE_POS_MAP.get(chinese_pos, chinese_pos)


async def _await_result(awaitable: Awaitable[str]) -> str:
    return await awaitable


class RomanizationAdapter:
    """Thin wrapper around an external romanization function.

    Features:
    - Per-call timeout on a dedicated daemon thread (the external function may
      block indefinitely; a hung call never delays later calls)
    - Accepts synchronous or awaitable romanization functions
    - Retry with exponential backoff for raised errors (not for timeouts)
    - In-memory memoization of successful results
    """

    def __init__(
        self,
        romanize_fn: Optional[RomanizeFn] = None,
        timeout_seconds: float = ROMANIZATION_TIMEOUT_SECONDS,
        max_retries: int = 1,
        retry_delay: float = 0.1,
        cache_enabled: bool = True,
    ):
        """Initialize romanization adapter.

        Args:
            romanize_fn: text -> romanized text (default: pypinyin with tone marks)
            timeout_seconds: Default bound for one call (default: ROMANIZATION_TIMEOUT_SECONDS)
            max_retries: Extra attempts after a raised error (default: 1)
            retry_delay: Initial delay between retries in seconds
            cache_enabled: Memoize successful results (default: True)
        """
        self.romanize_fn = romanize_fn or get_chinese_pinyin
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.cache_enabled = cache_enabled

        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

        # Statistics
        self.calls = 0
        self.failures = 0

    def _invoke(self, text: str) -> str:
        result = self.romanize_fn(text)
        if inspect.isawaitable(result):
            result = asyncio.run(_await_result(result))
        if not isinstance(result, str):
            raise TypeError(f"romanization returned {type(result).__name__}, expected str")
        return result

    def romanize(self, text: str, timeout: Optional[float] = None) -> str:
        """Romanize text.

        Args:
            text: Text to romanize
            timeout: Per-call bound in seconds (default: adapter timeout)

        Returns:
            Romanized text

        Raises:
            RomanizationTimeout: If the call exceeded the bound
            AdapterFailure: If the function raised on every attempt
        """
        if self.cache_enabled:
            with self._lock:
                cached = self._cache.get(text)
            if cached is not None:
                return cached

        timeout = self.timeout_seconds if timeout is None else timeout
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            with self._lock:
                self.calls += 1
            try:
                result = call_with_timeout(
                    lambda: self._invoke(text), timeout, name="romanization"
                )
            except FutureTimeoutError:
                with self._lock:
                    self.failures += 1
                raise RomanizationTimeout(f"romanization of {text!r} exceeded {timeout}s")
            except Exception as e:
                last_error = e
                with self._lock:
                    self.failures += 1
                if attempt < self.max_retries:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.debug(
                        f"Romanization attempt {attempt + 1} failed for {text!r}: {e}, "
                        f"retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
                continue

            if self.cache_enabled:
                with self._lock:
                    self._cache[text] = result
            return result

        raise AdapterFailure(f"romanization of {text!r} failed: {str(last_error)[:200]}")

    def romanize_or_original(self, text: str, timeout: Optional[float] = None) -> Tuple[str, bool]:
        """Romanize text, substituting the original text on failure.

        Returns:
            Tuple of (romanization, succeeded)
        """
        try:
            return self.romanize(text, timeout=timeout), True
        except AdapterFailure as e:
            logger.warning(f"Romanization fallback to original text ({e.code}): {e.detail}")
            return text, False

    def clear_cache(self) -> None:
        with self._lock:
            self._cache = {}
