"""Error types raised by the speech capture side of the voice-to-task pipeline."""

from typing import Optional, Any


class SpeechError(Exception):
    """Base class for speech session and backend failures."""

    user_message = "There was a problem with speech recognition. Please try again."

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class PermissionDeniedError(SpeechError):
    """Microphone access was refused or revoked."""

    def __init__(self, permission: Optional[Any] = None, message: str = "Microphone permission denied"):
        super().__init__(message)
        self.permission = permission

    @property
    def can_ask_again(self) -> bool:
        return bool(getattr(self.permission, "can_ask_again", False))

    @property
    def user_message(self) -> str:
        if self.can_ask_again:
            return ("Voice-to-Task requires microphone access to convert your speech to tasks. "
                    "Please allow microphone access to continue.")
        return ("Microphone access has been denied. To use Voice-to-Task, "
                "please enable microphone permissions in your device settings.")


class NetworkFailureError(SpeechError):
    """The cloud transcription request failed."""

    user_message = "Could not reach the speech service. Check your connection and try again."

    def __init__(self, message: str, status: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.status = status


class BackendError(SpeechError):
    """A transcription backend could not be activated or failed while running."""


class UnsupportedPlatformError(SpeechError):
    """No native speech recognizer is available on this platform."""

    user_message = "Speech recognition is not supported on this platform."


class SpeechNotConfiguredError(SpeechError):
    """Cloud transcription was requested without valid credentials."""

    user_message = "Speech recognition is not configured."
