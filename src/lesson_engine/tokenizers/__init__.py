"""
Tokenizers for lesson content.

- rule_based.py: dictionary + character-class segmentation (always available)
- segmentation.py: alternate-tokenizer runner with timeout and fallback
- spacy_tokenizer.py: optional spaCy alternate strategy
"""

from lesson_engine.tokenizers.rule_based import RuleBasedTokenizer, tokenize, tokenize_strings
from lesson_engine.tokenizers.segmentation import AlternateTokenizer, SegmentationRunner

__all__ = [
    "AlternateTokenizer",
    "RuleBasedTokenizer",
    "SegmentationRunner",
    "tokenize",
    "tokenize_strings",
]
