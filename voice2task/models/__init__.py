"""Data models for the voice2task pipeline."""

from .speech import SpeechState, TranscriptResult, SpeechOptions, SpeechCallbacks
from .audio import AudioStats, AudioRecording
from .parsing import ParseStrategy, ParseOptions, ParseResult
from .platform import PlatformInfo

__all__ = [
    "SpeechState",
    "TranscriptResult",
    "SpeechOptions",
    "SpeechCallbacks",
    "AudioStats",
    "AudioRecording",
    # Segmentation
    "ParseStrategy",
    "ParseOptions",
    "ParseResult",
    "PlatformInfo",
]
