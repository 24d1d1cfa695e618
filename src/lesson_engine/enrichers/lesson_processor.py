"""Lesson enrichment pipeline.

Turns a raw lesson into ProcessedLessonContent in five stages, reporting
progress through the status tracker after each one:

1. Segment content into tokens (20)
2. Romanize every token (40)
3. Build the vocabulary map (60)
4. Attach vocabulary references to tokens (80)
5. Tag tokens for audio (100)

Romanization failures are per-token: the token keeps its own text as its
romanization and the run continues. Empty content aborts before stage 1.
Any other failure is recorded in the status tracker and re-raised.
"""

import logging
import re
import time
from typing import Iterable, List, Optional

from lesson_engine.analyzers.frequency import analyze, extract_candidate_words
from lesson_engine.cache.processing_cache import ProcessingCache
from lesson_engine.enrichers.status import ProcessingStatusTracker
from lesson_engine.errors import InvalidLessonError, ValidationFailure
from lesson_engine.models.lesson import Lesson
from lesson_engine.models.processing import (
    ProcessedLessonContent,
    ProcessingOptions,
    ProcessingState,
    ProcessingStatus,
    Token,
    TokenKind,
    ValidationResult,
    VocabularyEntry,
    VocabularyMap,
    VocabularyReference,
)
from lesson_engine.tokenizers.segmentation import SegmentationRunner
from lesson_engine.utils.logging_config import pipeline_stage_logger
from lesson_engine.utils.romanization import RomanizationAdapter, translate_chinese_pos

logger = logging.getLogger(__name__)

# Tone-marked pinyin: letters, tone vowels, whitespace and apostrophes
PINYIN_PATTERN = re.compile(
    r"^[a-zA-ZüÜāáǎàōóǒòēéěèīíǐìūúǔùǖǘǚǜĀÁǍÀŌÓǑÒĒÉĚÈĪÍǏÌŪÚǓÙǕǗǙǛńňǹḿ\s'’]*$"
)

STAGE_PROGRESS = {
    "tokenize": 20,
    "romanize": 40,
    "vocabulary": 60,
    "vocabulary_refs": 80,
    "audio": 100,
}


def is_valid_pinyin(text: str) -> bool:
    return bool(PINYIN_PATTERN.match(text))


def audio_id_for(lesson_id: str, index: int) -> str:
    """Deterministic audio identifier for the token at ``index`` (0-based)."""
    return f"audio-{lesson_id}-{index + 1:03d}"


class LessonProcessor:
    """Runs the enrichment pipeline for lessons.

    Collaborators are injected so hosts and tests can share or isolate them:
    the romanization adapter, the segmentation runner, the processing cache
    and the status tracker. Anything not supplied gets a private default.
    """

    def __init__(
        self,
        romanizer: Optional[RomanizationAdapter] = None,
        segmentation: Optional[SegmentationRunner] = None,
        cache: Optional[ProcessingCache] = None,
        status_tracker: Optional[ProcessingStatusTracker] = None,
    ):
        """Initialize lesson processor.

        Args:
            romanizer: Romanization adapter (default: pypinyin tone marks)
            segmentation: Segmentation runner (default: rule-based only)
            cache: Processing cache written on completion (default: new cache)
            status_tracker: Status registry (default: new tracker)
        """
        self.romanizer = romanizer or RomanizationAdapter()
        self.segmentation = segmentation or SegmentationRunner()
        self.cache = cache if cache is not None else ProcessingCache()
        self.status_tracker = status_tracker or ProcessingStatusTracker()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(
        self, lesson: Lesson, options: Optional[ProcessingOptions] = None
    ) -> ProcessedLessonContent:
        """Process a lesson into enriched content.

        Args:
            lesson: Lesson to process
            options: Processing options (default: ProcessingOptions())

        Returns:
            Processed lesson content

        Raises:
            InvalidLessonError: If the lesson content is empty or whitespace-only
            ValidationFailure: If the produced content breaks its invariants
        """
        options = options or ProcessingOptions()
        start_time = time.perf_counter()

        if not lesson.content or not lesson.content.strip():
            error = InvalidLessonError(f"lesson {lesson.id!r} has empty content")
            self.status_tracker.update(
                lesson.id,
                ProcessingState.FAILED,
                0,
                processing_time_ms=self._elapsed_ms(start_time),
                errors=[str(error)],
            )
            raise error

        self.status_tracker.update(lesson.id, ProcessingState.PROCESSING, 0)
        progress = 0

        try:
            with pipeline_stage_logger("tokenize", lesson_id=lesson.id):
                segmentation = self.segmentation.segment(lesson.content)
                tokens = segmentation.tokens
                if options.max_tokens is not None:
                    tokens = tokens[: options.max_tokens]
            progress = self._advance(lesson.id, "tokenize", start_time)

            with pipeline_stage_logger("romanize", lesson_id=lesson.id):
                if options.generate_romanization:
                    tokens = self._romanize_tokens(tokens, options.romanization_timeout_seconds)
            progress = self._advance(lesson.id, "romanize", start_time)

            with pipeline_stage_logger("vocabulary", lesson_id=lesson.id):
                vocabulary = self._build_vocabulary(
                    lesson,
                    seed=options.vocabulary_enhancement,
                    extract=options.extract_content_vocabulary,
                    timeout=options.romanization_timeout_seconds,
                )
            progress = self._advance(lesson.id, "vocabulary", start_time)

            with pipeline_stage_logger("vocabulary_refs", lesson_id=lesson.id):
                tokens = self._attach_vocabulary_refs(tokens, vocabulary)
            progress = self._advance(lesson.id, "vocabulary_refs", start_time)

            with pipeline_stage_logger("audio", lesson_id=lesson.id):
                tokens = self._tag_audio(lesson.id, tokens, options.prepare_audio)

            content = ProcessedLessonContent(
                lesson_id=lesson.id,
                tokens=tokens,
                vocabulary=vocabulary,
                total_tokens=len(tokens),
                romanization_generated=options.generate_romanization,
                audio_ready=options.prepare_audio,
                segmentation_strategy=segmentation.strategy_used,
                segmentation_fallback=segmentation.fallback_occurred,
            )

            validation = self.validate_processed_content(content)
            if not validation.is_valid:
                raise ValidationFailure(
                    f"processed content for {lesson.id!r} failed validation",
                    errors=validation.errors,
                )
            for warning in validation.warnings:
                logger.debug(f"{lesson.id}: {warning}")

        except Exception as e:
            errors = [str(e)]
            if isinstance(e, ValidationFailure):
                errors.extend(e.errors)
            self.status_tracker.update(
                lesson.id,
                ProcessingState.FAILED,
                progress,
                processing_time_ms=self._elapsed_ms(start_time),
                errors=errors,
            )
            logger.error(f"Processing failed for lesson {lesson.id} at {progress}%: {e}")
            raise

        if options.cache_results:
            self.cache.put(lesson.id, options, content, ttl_seconds=options.cache_ttl_seconds)

        processing_time_ms = self._elapsed_ms(start_time)
        self.status_tracker.update(
            lesson.id,
            ProcessingState.COMPLETED,
            STAGE_PROGRESS["audio"],
            processing_time_ms=processing_time_ms,
        )
        logger.info(
            f"Processed lesson {lesson.id}: {content.total_tokens} tokens, "
            f"{len(content.vocabulary)} vocabulary entries ({processing_time_ms:.1f}ms)"
        )
        return content

    def get_or_process(
        self, lesson: Lesson, options: Optional[ProcessingOptions] = None
    ) -> ProcessedLessonContent:
        """Return cached content for (lesson, options) or run the pipeline."""
        options = options or ProcessingOptions()
        cached = self.cache.get(lesson.id, options)
        if cached is not None:
            logger.debug(f"Using cached processed content for lesson {lesson.id}")
            return cached
        return self.process(lesson, options)

    def get_processing_status(self, lesson_id: str) -> ProcessingStatus:
        """Status of the most recent run for a lesson.

        Raises:
            NotFoundError: If no run was ever started for the lesson
        """
        return self.status_tracker.get(lesson_id)

    def process_vocabulary(self, lesson: Lesson) -> List[VocabularyEntry]:
        """Enriched vocabulary for a lesson without running the full pipeline.

        Declared vocabulary comes first, followed by candidate words found in
        the content that were not declared.
        """
        return self._build_vocabulary(lesson, seed=True, extract=True).values()

    def validate_processed_content(self, content: ProcessedLessonContent) -> ValidationResult:
        """Check processed content against its structural invariants.

        Errors: missing tokens, token count mismatch, missing id/text,
        invalid or overlapping offsets, vocabulary key/word mismatch, missing
        vocabulary romanization. Romanization that is not pinyin (a per-token
        fallback) is only a warning.
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not content.tokens:
            errors.append("content must have at least one token")

        if content.total_tokens != len(content.tokens):
            errors.append(
                f"total tokens mismatch: expected {content.total_tokens}, got {len(content.tokens)}"
            )

        previous_end = 0
        for token in content.tokens:
            if not token.id or not token.text:
                errors.append("all tokens must have id and text")

            if token.start < 0 or token.end <= token.start:
                errors.append(f"invalid token offsets: {token.start}-{token.end}")
            elif token.start < previous_end:
                errors.append(f"token {token.id} overlaps previous token at {token.start}")
            previous_end = max(previous_end, token.end)

            if (
                content.romanization_generated
                and token.kind == TokenKind.WORD
                and token.romanization
                and not is_valid_pinyin(token.romanization)
            ):
                warnings.append(f"non-pinyin romanization for {token.text!r}: {token.romanization!r}")

        for word, entry in content.vocabulary.items():
            if word != entry.word:
                errors.append(f"vocabulary map key mismatch: {word} != {entry.word}")
            if content.romanization_generated and not entry.romanization:
                errors.append(f"missing romanization for vocabulary word: {word}")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _romanize_tokens(self, tokens: List[Token], timeout: float) -> List[Token]:
        romanized = []
        fallbacks = 0
        for token in tokens:
            text, ok = self.romanizer.romanize_or_original(token.text, timeout=timeout)
            if not ok:
                fallbacks += 1
            romanized.append(token.model_copy(update={"romanization": text}))

        if fallbacks:
            logger.warning(f"Romanization fell back to original text for {fallbacks}/{len(tokens)} tokens")
        return romanized

    def _build_vocabulary(
        self, lesson: Lesson, seed: bool, extract: bool, timeout: Optional[float] = None
    ) -> VocabularyMap:
        vocabulary = VocabularyMap()

        if seed:
            for item in lesson.vocabulary:
                if item.word in vocabulary:
                    continue
                vocabulary.add(
                    self._enrich_word(
                        item.word,
                        lesson.content,
                        translation=item.translation,
                        part_of_speech=translate_chinese_pos(item.part_of_speech) if item.part_of_speech else "unknown",
                        timeout=timeout,
                    )
                )

        if extract:
            for word in extract_candidate_words(lesson.content):
                if word in vocabulary:
                    continue
                vocabulary.add(self._enrich_word(word, lesson.content, timeout=timeout))

        return vocabulary

    def _enrich_word(
        self,
        word: str,
        full_text: str,
        translation: str = "",
        part_of_speech: str = "unknown",
        timeout: Optional[float] = None,
    ) -> VocabularyEntry:
        analysis = analyze(word, full_text)
        romanization, _ = self.romanizer.romanize_or_original(word, timeout=timeout)
        return VocabularyEntry(
            word=word,
            translation=translation,
            part_of_speech=part_of_speech,
            romanization=romanization,
            frequency=analysis.frequency,
            difficulty=analysis.difficulty,
        )

    def _attach_vocabulary_refs(self, tokens: Iterable[Token], vocabulary: VocabularyMap) -> List[Token]:
        enhanced = []
        for token in tokens:
            refs = []
            for word, entry in vocabulary.items():
                start = token.text.find(word)
                if start != -1:
                    refs.append(
                        VocabularyReference(
                            word=word,
                            start=start,
                            end=start + len(word),
                            difficulty=entry.difficulty,
                        )
                    )
            enhanced.append(token.model_copy(update={"vocabulary_refs": refs}))
        return enhanced

    def _tag_audio(self, lesson_id: str, tokens: List[Token], prepare_audio: bool) -> List[Token]:
        if not prepare_audio:
            return [
                token.model_copy(update={"audio_ready": False, "audio_id": None})
                for token in tokens
            ]
        return [
            token.model_copy(update={"audio_ready": True, "audio_id": audio_id_for(lesson_id, index)})
            for index, token in enumerate(tokens)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(self, lesson_id: str, stage: str, start_time: float) -> int:
        progress = STAGE_PROGRESS[stage]
        self.status_tracker.update(
            lesson_id,
            ProcessingState.PROCESSING,
            progress,
            processing_time_ms=self._elapsed_ms(start_time),
        )
        return progress

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000
