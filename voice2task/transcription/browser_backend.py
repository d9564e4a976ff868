"""Backend wrapping a host-provided continuous speech recognizer."""

import logging
from typing import Any, Callable, Optional, Protocol

from .base import AbstractTranscriptionBackend, BackendListener
from ..errors import (
    BackendError,
    NetworkFailureError,
    PermissionDeniedError,
    UnsupportedPlatformError,
)
from ..models.speech import SpeechOptions, TranscriptResult
from ..permissions.gate import PermissionResult, PermissionStatus

logger = logging.getLogger(__name__)

# Used when the recognizer reports no confidence for a result
ESTIMATED_CONFIDENCE = 0.8

PERMISSION_ERROR_CODES = ("not-allowed", "service-not-allowed")


class NativeRecognizer(Protocol):
    """Shape of a continuous, interim-enabled speech recognizer."""

    continuous: bool
    interim_results: bool
    lang: str
    on_result: Optional[Callable[[str, Optional[float], bool], Any]]
    on_error: Optional[Callable[[str], Any]]
    on_end: Optional[Callable[[], Any]]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


class BrowserBackend(AbstractTranscriptionBackend):
    """Maps native recognizer events 1:1 onto backend events."""

    name = "browser"

    def __init__(self, recognizer_factory: Optional[Callable[[], NativeRecognizer]]):
        super().__init__()
        if recognizer_factory is None:
            raise UnsupportedPlatformError("No native speech recognizer available on this platform")
        self.recognizer_factory = recognizer_factory
        self.recognizer: Optional[NativeRecognizer] = None

    def activate(self, options: SpeechOptions, listener: BackendListener) -> None:
        self._begin(options, listener)
        recognizer = self.recognizer_factory()
        recognizer.continuous = True
        recognizer.interim_results = True
        recognizer.lang = options.language
        recognizer.on_result = self._handle_result
        recognizer.on_error = self._handle_error
        recognizer.on_end = self._handle_end
        self.recognizer = recognizer

        try:
            recognizer.start()
        except Exception as e:
            self.active = False
            self._detach()
            raise BackendError(f"Failed to start speech recognition: {e}", e) from e

    def finalize(self) -> None:
        """Stop listening; the recognizer then delivers its final result and ends."""
        if self.active and self.recognizer is not None:
            self.recognizer.stop()

    def deactivate(self) -> None:
        self.active = False
        recognizer = self._detach()
        if recognizer is not None:
            try:
                recognizer.abort()
            except Exception as e:
                logger.warning(f"Error aborting speech recognizer: {e}")

    def _detach(self) -> Optional[NativeRecognizer]:
        recognizer = self.recognizer
        self.recognizer = None
        if recognizer is not None:
            recognizer.on_result = None
            recognizer.on_error = None
            recognizer.on_end = None
        return recognizer

    def _handle_result(self, transcript: str, confidence: Optional[float], is_final: bool) -> None:
        if confidence is None:
            confidence = ESTIMATED_CONFIDENCE
        logger.debug(f"Native {'final' if is_final else 'partial'} result: '{transcript}' ({confidence})")
        self._emit_transcript(TranscriptResult(transcript.strip(), confidence, is_final, backend=self.name))

    def _handle_error(self, code: str) -> None:
        if code in PERMISSION_ERROR_CODES:
            permission = PermissionResult(granted=False, can_ask_again=False, status=PermissionStatus.DENIED)
            self._emit_failure(PermissionDeniedError(permission, f"Speech recognition not allowed: {code}"))
        elif code == "network":
            self._emit_failure(NetworkFailureError("Speech recognition network error"))
        elif code == "no-speech":
            logger.info("Native recognizer heard no speech")
            self._emit_transcript(TranscriptResult.no_speech_detected(backend=self.name))
        else:
            self._emit_failure(BackendError(f"Speech recognition error: {code}"))

    def _handle_end(self) -> None:
        if self.active:
            logger.info("Native recognizer ended without a final result")
        self._emit_finished()
