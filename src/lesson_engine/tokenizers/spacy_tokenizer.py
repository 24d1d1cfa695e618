"""spaCy-backed alternate tokenizer for Chinese text.

Install the optional extra and a Chinese pipeline to enable it:
    pip install "lesson-engine[segmentation]"
    python -m spacy download zh_core_web_sm
"""

import logging
from typing import List

from constants import SPACY_ZH_MODEL

try:
    import spacy
    HAS_SPACY = True
except ImportError:
    HAS_SPACY = False
    spacy = None

logger = logging.getLogger(__name__)


class SpacyTokenizer:
    """Word segmentation through a spaCy Chinese pipeline."""

    name = "spacy"

    def __init__(self, spacy_model: str = SPACY_ZH_MODEL):
        """Load the spaCy pipeline.

        Args:
            spacy_model: spaCy model name (default: zh_core_web_sm)

        Raises:
            RuntimeError: If spaCy or the model is not installed
        """
        if not HAS_SPACY:
            error_msg = (
                "spaCy not installed. Alternate segmentation will not work. "
                "Install with: pip install 'lesson-engine[segmentation]'"
            )
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        try:
            self.nlp = spacy.load(spacy_model, disable=["parser", "ner"])
            logger.info(f"Loaded spaCy model: {spacy_model}")
        except OSError:
            error_msg = (
                f"spaCy model '{spacy_model}' not found. "
                f"Install with: python -m spacy download {spacy_model}"
            )
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def cut(self, text: str) -> List[str]:
        return [token.text for token in self.nlp(text)]
