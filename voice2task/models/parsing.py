"""Task segmentation data models."""

from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class ParseStrategy(str, Enum):
    """Segmentation strategies competing to split an utterance into tasks."""

    CONJUNCTION_SPLIT = "conjunction_split"
    PUNCTUATION_SPLIT = "punctuation_split"
    ACTION_VERB_SPLIT = "action_verb_split"
    HYBRID = "hybrid"
    FALLBACK = "fallback"


class ParseOptions(BaseModel):
    """Configuration for the task segmenter."""

    min_task_length: int = Field(default=3, ge=0, description="Minimum characters for a valid task.")
    max_tasks: int = Field(default=10, ge=1, description="Maximum number of tasks to return.")
    preserve_original_on_failure: bool = Field(
        default=True, description="Keep the whole utterance as one task when nothing splits."
    )
    language: str = Field(default="en", description="Language of the parsing rules.")

    @classmethod
    def from_config(cls, config) -> "ParseOptions":
        """Build options from the `parsing.*` section of a Voice2TaskConfig."""
        return cls(
            min_task_length=config.get("parsing.min_task_length", 3),
            max_tasks=config.get("parsing.max_tasks", 10),
            preserve_original_on_failure=config.get("parsing.preserve_original_on_failure", True),
            language=config.get("parsing.language", "en"),
        )


@dataclass
class ParseResult:
    """Outcome of segmenting one transcript."""
    tasks: List[str]
    original_text: str
    confidence: float
    strategy: ParseStrategy
    success: bool
