"""Segmentation with an optional alternate tokenizer and rule-based fallback.

The alternate strategy runs on its own daemon thread under a hard timeout. A
timeout or any exception from it yields the rule-based tokens instead, and
the returned SegmentationResult records which strategy produced them.
"""

import logging
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Iterable, List, Optional, Protocol

from constants import SEGMENTATION_TIMEOUT_SECONDS
from lesson_engine.models.processing import SegmentationResult, Token
from lesson_engine.tokenizers.rule_based import RuleBasedTokenizer, classify_span
from lesson_engine.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


class AlternateTokenizer(Protocol):
    """Higher-quality external segmenter, e.g. a spaCy or jieba pipeline."""

    name: str

    def cut(self, text: str) -> Iterable[str]:
        ...


def spans_to_tokens(text: str, spans: Iterable[str]) -> List[Token]:
    """Locate externally produced spans in ``text`` and build offset tokens.

    Spans are searched left to right from the end of the previous match; spans
    that cannot be located or are whitespace-only are skipped.
    """
    tokens: List[Token] = []
    cursor = 0

    for span in spans:
        if not span or not span.strip():
            continue
        start = text.find(span, cursor)
        if start == -1:
            logger.debug(f"Alternate span not found in source text: {span!r}")
            continue
        end = start + len(span)
        tokens.append(
            Token(
                id=f"tok-{len(tokens) + 1:03d}",
                text=span,
                start=start,
                end=end,
                kind=classify_span(span),
            )
        )
        cursor = end

    return tokens


class SegmentationRunner:
    """Runs the preferred tokenizer and falls back to rule-based segmentation."""

    def __init__(
        self,
        alternate: Optional[AlternateTokenizer] = None,
        fallback: Optional[RuleBasedTokenizer] = None,
        timeout_seconds: float = SEGMENTATION_TIMEOUT_SECONDS,
    ):
        """Initialize segmentation runner.

        Args:
            alternate: Preferred tokenizer (None = rule-based only)
            fallback: Rule-based tokenizer (default: built-in dictionary)
            timeout_seconds: Hard bound for one alternate call (default: 3s)
        """
        self.alternate = alternate
        self.fallback = fallback or RuleBasedTokenizer()
        self.timeout_seconds = timeout_seconds

    def segment(self, text: str) -> SegmentationResult:
        """Segment text, recording the strategy used and whether fallback occurred."""
        start_time = time.perf_counter()

        if self.alternate is None:
            tokens = self.fallback.tokenize(text)
            return SegmentationResult(
                strategy_used=self.fallback.name,
                fallback_occurred=False,
                tokens=tokens,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )

        try:
            spans = call_with_timeout(
                lambda: list(self.alternate.cut(text)), self.timeout_seconds, name="segmentation"
            )
            tokens = spans_to_tokens(text, spans)
            return SegmentationResult(
                strategy_used=self.alternate.name,
                fallback_occurred=False,
                tokens=tokens,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )
        except FutureTimeoutError:
            error = f"{self.alternate.name} timed out after {self.timeout_seconds}s"
        except Exception as e:
            error = f"{self.alternate.name} failed: {str(e)[:200]}"

        logger.warning(f"Segmentation fallback to {self.fallback.name}: {error}")
        tokens = self.fallback.tokenize(text)
        return SegmentationResult(
            strategy_used=self.fallback.name,
            fallback_occurred=True,
            tokens=tokens,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            error=error,
        )

