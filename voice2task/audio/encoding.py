"""Mapping from audio artifact containers to cloud encoding labels."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ENCODINGS = {
    ".m4a": "MP4",
    ".mp4": "MP4",
    ".wav": "LINEAR16",
    ".flac": "FLAC",
    ".amr": "AMR",
    ".ogg": "OGG_OPUS",
}

DEFAULT_ENCODING = "MP4"


def audio_encoding_for(path: str) -> str:
    """Return the encoding label matching an artifact's file extension.

    Args:
        path: Path of the recorded audio file

    Returns:
        Encoding label for the transcription request
    """
    suffix = Path(path).suffix.lower()
    encoding = ENCODINGS.get(suffix)
    if encoding is None:
        logger.warning(f"Unknown audio container '{suffix or path}', assuming {DEFAULT_ENCODING}")
        return DEFAULT_ENCODING
    return encoding
