"""Audio-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    peak_level: float = 0.0


@dataclass
class AudioRecording:
    """A finished (or failed) audio artifact awaiting upload."""
    handle: str  # path of the temporary audio file
    duration_ms: int
    byte_size: int
    success: bool
    sample_rate: int = 16000
    channels: int = 1
    peak_level: float = 0.0
    error: Optional[str] = None
