from .capture import AudioCapture
from .encoding import audio_encoding_for

__all__ = ["AudioCapture", "audio_encoding_for"]
