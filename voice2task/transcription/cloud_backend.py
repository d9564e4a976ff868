"""Backend that records an utterance and transcribes it with the cloud API."""

import asyncio
import logging
from typing import Callable, Optional

from .base import AbstractTranscriptionBackend, BackendListener
from .google_speech_client import GoogleSpeechClient
from ..audio.capture import AudioCapture
from ..config.cloud import CloudSpeechSettings
from ..errors import BackendError, SpeechError, SpeechNotConfiguredError
from ..models.speech import SpeechOptions

logger = logging.getLogger(__name__)


class CloudBackend(AbstractTranscriptionBackend):
    """Records until finalized, then uploads the artifact for one final transcript.

    No partial transcripts are produced. While the upload is in flight
    the session is told the backend is processing.
    """

    name = "cloud"

    def __init__(
        self,
        settings: CloudSpeechSettings,
        capture_factory: Callable[[], AudioCapture] = AudioCapture,
        client: Optional[GoogleSpeechClient] = None,
    ):
        super().__init__()
        if not settings.is_configured():
            raise SpeechNotConfiguredError("Google Cloud Speech API is not configured")
        self.settings = settings
        self.capture_factory = capture_factory
        self.client = client or GoogleSpeechClient(settings)
        self.capture: Optional[AudioCapture] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None

    def activate(self, options: SpeechOptions, listener: BackendListener) -> None:
        self._begin(options, listener)
        self._loop = asyncio.get_running_loop()
        self._task = None
        self.capture = self.capture_factory()
        try:
            self.capture.start_recording(on_limit_reached=self._on_limit_reached)
        except Exception as e:
            self.active = False
            self.capture = None
            raise BackendError(f"Failed to start audio recording: {e}", e) from e

    def finalize(self) -> None:
        """Stop recording and upload what was captured."""
        if not self.active or self._task is not None:
            return
        logger.info("Finalizing recording for cloud transcription")
        self._emit_processing()
        self._task = self._loop.create_task(self._transcribe(self.capture))

    def deactivate(self) -> None:
        self.active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        capture, self.capture = self.capture, None
        if capture is not None:
            capture.cancel()

    def _on_limit_reached(self) -> None:
        # Runs on the recording thread
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.finalize)

    async def _transcribe(self, capture: AudioCapture) -> None:
        try:
            recording = await asyncio.to_thread(capture.stop_recording)
            if not recording.success:
                raise BackendError(f"Audio recording failed: {recording.error or 'no audio captured'}")
            logger.info(f"Uploading recording: {recording.duration_ms}ms, {recording.byte_size} bytes")
            result = await self.client.transcribe_file(
                recording.handle, recording.sample_rate, self.options.language
            )
            self._emit_transcript(result)
        except asyncio.CancelledError:
            logger.info("Cloud transcription cancelled")
            raise
        except SpeechError as e:
            self._emit_failure(e)
        except Exception as e:
            self._emit_failure(BackendError(f"Transcription failed: {e}", e))
        finally:
            # The artifact is never read after the upload completes
            capture.cancel()
