"""Word lists driving rule-based task segmentation."""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Vocabulary:
    """Fixed word lists for one language."""
    language: str
    conjunctions: Tuple[str, ...]
    action_verbs: Tuple[str, ...]
    single_task_indicators: Tuple[str, ...]
    filler_prefixes: Tuple[str, ...]

    @property
    def two_word_verbs(self) -> Tuple[str, ...]:
        return tuple(v for v in self.action_verbs if " " in v)


ENGLISH = Vocabulary(
    language="en",
    conjunctions=(
        "and", "then", "also", "plus", "after that", "next", "afterwards",
        "followed by", "as well as", "&", "+", "along with",
    ),
    action_verbs=(
        "buy", "call", "email", "text", "schedule", "book", "reserve", "order",
        "pick up", "drop off", "visit", "go to", "check", "review", "finish",
        "complete", "start", "begin", "organize", "clean", "wash", "prepare",
        "make", "create", "write", "read", "send", "deliver", "return",
        "cancel", "confirm", "update", "remind", "remember", "pay", "transfer",
    ),
    # Phrases that introduce one task made of several items
    single_task_indicators=(
        "groceries:", "shopping list:", "items:", "things to",
        "remember to", "don't forget", "note to self",
    ),
    filler_prefixes=("i need to", "i have to", "i want to", "i should"),
)

VOCABULARIES: Dict[str, Vocabulary] = {
    "en": ENGLISH,
}


def get_vocabulary(language: str) -> Vocabulary:
    """Return the vocabulary for a language tag, falling back to English.

    Args:
        language: Language tag such as "en" or "en-US"

    Returns:
        Vocabulary for the tag's primary subtag
    """
    primary = (language or "en").split("-")[0].lower()
    vocabulary = VOCABULARIES.get(primary)
    if vocabulary is None:
        logger.warning(f"No parsing rules for language '{language}', using English rules")
        return ENGLISH
    return vocabulary
