"""Transcription backends for voice2task."""

from .base import AbstractTranscriptionBackend, BackendListener
from .browser_backend import BrowserBackend, NativeRecognizer
from .cloud_backend import CloudBackend
from .simulated_backend import SimulatedBackend
from .google_speech_client import GoogleSpeechClient
from .selector import BackendSelector, is_speech_recognition_supported
from .publisher import SpeechEventPublisher

__all__ = [
    "AbstractTranscriptionBackend",
    "BackendListener",
    "BrowserBackend",
    "NativeRecognizer",
    "CloudBackend",
    "SimulatedBackend",
    "GoogleSpeechClient",
    "BackendSelector",
    "is_speech_recognition_supported",
    "SpeechEventPublisher",
]
