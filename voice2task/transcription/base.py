"""Abstract base class for transcription backends."""

from abc import ABC, abstractmethod
from typing import Optional, Protocol
import logging

from ..errors import SpeechError
from ..models.speech import SpeechOptions, TranscriptResult

logger = logging.getLogger(__name__)


class BackendListener(Protocol):
    """Receiver of backend events; implemented by the speech session."""

    def on_transcript(self, result: TranscriptResult) -> None: ...

    def on_processing(self) -> None: ...

    def on_finished(self) -> None: ...

    def on_failure(self, error: SpeechError) -> None: ...


class AbstractTranscriptionBackend(ABC):
    """Turns one listening cycle into partial transcripts and one final transcript.

    A backend emits through its listener only between activate() and
    deactivate(), and emits at most one final transcript or failure.
    """

    name = "abstract"

    def __init__(self):
        self.options: Optional[SpeechOptions] = None
        self.listener: Optional[BackendListener] = None
        self.active = False

    @abstractmethod
    def activate(self, options: SpeechOptions, listener: BackendListener) -> None:
        """Begin recognition and emit events to `listener`.

        Raises:
            SpeechError: if recognition could not be started
        """
        pass

    @abstractmethod
    def finalize(self) -> None:
        """Ask for the final transcript of what was heard so far."""
        pass

    @abstractmethod
    def deactivate(self) -> None:
        """Stop recognition. No events are emitted afterwards."""
        pass

    def cancel(self) -> None:
        """Stop recognition and discard anything captured."""
        self.deactivate()

    def _begin(self, options: SpeechOptions, listener: BackendListener) -> None:
        self.options = options
        self.listener = listener
        self.active = True
        logger.info(f"Activating {self.name} backend (language={options.language})")

    def _emit_transcript(self, result: TranscriptResult) -> None:
        if not self.active:
            logger.debug(f"{self.name} backend inactive, dropping transcript")
            return
        if result.is_final:
            self.active = False
        self.listener.on_transcript(result)

    def _emit_processing(self) -> None:
        if self.active:
            self.listener.on_processing()

    def _emit_finished(self) -> None:
        if self.active:
            self.active = False
            self.listener.on_finished()

    def _emit_failure(self, error: SpeechError) -> None:
        if not self.active:
            logger.debug(f"{self.name} backend inactive, dropping error: {error}")
            return
        self.active = False
        logger.error(f"{self.name} backend failed: {error}")
        self.listener.on_failure(error)
