"""Speech session data models."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field


class SpeechState(str, Enum):
    """Lifecycle states of a speech session."""

    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass
class TranscriptResult:
    """A partial or final transcript produced by a backend."""
    transcript: str
    confidence: float
    is_final: bool
    no_speech: bool = False  # True when the backend heard nothing usable
    backend: Optional[str] = None

    def __post_init__(self):
        self.confidence = min(max(float(self.confidence or 0.0), 0.0), 1.0)

    @classmethod
    def no_speech_detected(cls, backend: Optional[str] = None) -> "TranscriptResult":
        """Final empty result used when recognition produced no alternatives."""
        return cls(transcript="", confidence=0.0, is_final=True, no_speech=True, backend=backend)


class SpeechOptions(BaseModel):
    """Options for one speech session."""

    language: str = Field(default="en-US", description="BCP-47 language tag.")
    timeout_ms: int = Field(default=10000, gt=0, description="Hard upper bound on listening time (ms).")
    partial_results: bool = Field(default=True, description="Forward partial transcripts to on_result.")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_config(cls, config) -> "SpeechOptions":
        """Build options from the `speech.*` section of a Voice2TaskConfig."""
        return cls(
            language=config.get("speech.language", "en-US"),
            timeout_ms=config.get("speech.timeout_ms", 10000),
            partial_results=config.get("speech.partial_results", True),
        )


@dataclass
class SpeechCallbacks:
    """The four callbacks a speech session dispatches to its owner."""
    on_start: Optional[Callable[[], Any]] = None
    on_result: Optional[Callable[[TranscriptResult], Any]] = None
    on_end: Optional[Callable[[], Any]] = None
    on_error: Optional[Callable[[Exception], Any]] = None

    def merged(self, other: "SpeechCallbacks") -> "SpeechCallbacks":
        """Return a copy where every callback set on `other` replaces ours."""
        values = {}
        for f in fields(self):
            replacement = getattr(other, f.name)
            values[f.name] = replacement if replacement is not None else getattr(self, f.name)
        return SpeechCallbacks(**values)
