"""Speech session state machine driving one transcription backend at a time."""

import logging
from typing import Any, List, Optional

from ..errors import BackendError, PermissionDeniedError, SpeechError
from ..models.platform import PlatformInfo
from ..models.speech import SpeechCallbacks, SpeechOptions, SpeechState, TranscriptResult
from ..permissions.gate import PermissionGate
from ..scheduling import LoopScheduler, Scheduler
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.selector import BackendSelector

logger = logging.getLogger(__name__)


class _CycleListener:
    """Forwards backend events only while its cycle and backend are current."""

    def __init__(self, session: "SpeechSession", cycle: int, backend: AbstractTranscriptionBackend):
        self.session = session
        self.cycle = cycle
        self.backend = backend

    def _is_current(self) -> bool:
        return self.session._cycle == self.cycle and self.session.active_backend is self.backend

    def on_transcript(self, result: TranscriptResult) -> None:
        if self._is_current():
            self.session._handle_transcript(result)

    def on_processing(self) -> None:
        if self._is_current():
            self.session._handle_processing()

    def on_finished(self) -> None:
        if self._is_current():
            self.session._handle_finished()

    def on_failure(self, error: SpeechError) -> None:
        if self._is_current():
            self.session._fail(error)


class SpeechSession:
    """Owns the listening lifecycle and dispatches the four session callbacks.

    States move Idle -> Listening -> (Processing ->) Idle, with Error
    reachable from anywhere and left again by start(). At most one
    backend is active, a timeout bounds every listening cycle, and each
    cycle delivers at most one final transcript.
    """

    def __init__(
        self,
        callbacks: Optional[SpeechCallbacks] = None,
        options: Optional[SpeechOptions] = None,
        platform: Optional[PlatformInfo] = None,
        permission_gate: Optional[PermissionGate] = None,
        backend_selector: Optional[BackendSelector] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """Initialize the session.

        Args:
            callbacks: on_start / on_result / on_end / on_error receivers
            options: Language, timeout and partial-result settings
            platform: Host capabilities used for permission and backend choice
            permission_gate: Microphone gate (built from `platform` if None)
            backend_selector: Backend factory (built from `platform` if None)
            scheduler: Time source for the timeout (the asyncio loop if None)
        """
        self.callbacks = callbacks or SpeechCallbacks()
        self.options = options or SpeechOptions()
        self.platform = platform or PlatformInfo()
        self.scheduler = scheduler or LoopScheduler()
        self.permission_gate = permission_gate or PermissionGate(self.platform)
        self.backend_selector = backend_selector or BackendSelector(self.platform, self.scheduler)

        self.observers: List[SpeechCallbacks] = []

        self.state = SpeechState.IDLE
        self.active_backend: Optional[AbstractTranscriptionBackend] = None
        self.last_error: Optional[Exception] = None
        self._timeout_handle = None
        self._cycle = 0

    async def start(self) -> None:
        """Request permission and begin a listening cycle.

        Calling start() while already listening restarts the cycle.

        Raises:
            PermissionDeniedError: if microphone access is refused
        """
        if self.is_listening():
            logger.info("start() called while listening, restarting the cycle")
            self._release_backend()

        self._cycle += 1
        cycle = self._cycle
        permission = await self.permission_gate.request()
        if cycle != self._cycle:
            logger.info("Session was stopped while waiting for permission")
            return

        if not permission.granted:
            error = PermissionDeniedError(permission)
            self._release_backend()
            self._set_state(SpeechState.ERROR)
            self.last_error = error
            logger.warning(f"Cannot start listening: {error}")
            self._dispatch("on_error", error)
            raise error

        self.last_error = None
        self._set_state(SpeechState.LISTENING)
        backend = self.backend_selector.select()
        self.active_backend = backend

        try:
            backend.activate(self.options, _CycleListener(self, cycle, backend))
        except SpeechError as e:
            self._fail(e)
            return
        except Exception as e:
            self._fail(BackendError(f"Failed to activate {backend.name} backend: {e}", e))
            return

        if cycle != self._cycle or self.state != SpeechState.LISTENING:
            return
        self._timeout_handle = self.scheduler.call_later(
            self.options.timeout_seconds, lambda: self._handle_timeout(cycle)
        )
        logger.info(f"Listening with {backend.name} backend "
                    f"(language={self.options.language}, timeout={self.options.timeout_ms}ms)")
        self._dispatch("on_start")

    def stop(self) -> None:
        """Stop listening and end the cycle. Safe to call at any time."""
        self._cycle += 1
        if self.is_listening():
            logger.info("Stopping speech session")
            self._release_backend()
            self._set_state(SpeechState.IDLE)
        else:
            logger.debug(f"stop() called while {self.state.value}")
        self._dispatch("on_end")

    def finish(self) -> None:
        """Ask the backend for the final transcript of what was said so far."""
        if self.state != SpeechState.LISTENING or self.active_backend is None:
            logger.debug(f"finish() ignored while {self.state.value}")
            return

        logger.info("Finishing utterance")
        backend = self.active_backend
        try:
            backend.finalize()
        except SpeechError as e:
            self._fail(e)
        except Exception as e:
            self._fail(BackendError(f"Failed to finalize {backend.name} backend: {e}", e))

    def cancel(self) -> None:
        """Abort the cycle and discard captured audio. Also clears an Error state."""
        self._cycle += 1
        backend, self.active_backend = self.active_backend, None
        if backend is not None:
            logger.info(f"Cancelling {backend.name} backend")
            try:
                backend.cancel()
            except Exception as e:
                logger.warning(f"Error cancelling {backend.name} backend: {e}")
        if self.state != SpeechState.IDLE:
            self._set_state(SpeechState.IDLE)
        self._cancel_timeout()
        self._dispatch("on_end")

    def is_listening(self) -> bool:
        return self.state in (SpeechState.LISTENING, SpeechState.PROCESSING)

    def get_state(self) -> SpeechState:
        return self.state

    def update_options(self, **changes: Any) -> None:
        """Change session options; takes effect on the next start()."""
        self.options = SpeechOptions(**{**self.options.model_dump(), **changes})
        logger.debug(f"Speech options updated: {self.options}")

    def update_callbacks(self, callbacks: Optional[SpeechCallbacks] = None, **changes: Any) -> None:
        """Replace the callbacks that are given, keep the others."""
        if callbacks is not None:
            self.callbacks = self.callbacks.merged(callbacks)
        if changes:
            self.callbacks = self.callbacks.merged(SpeechCallbacks(**changes))

    def add_observer(self, observer: SpeechCallbacks) -> None:
        """Receive every session event after the owner's callbacks.

        Observers are kept apart from `callbacks`, so update_callbacks()
        never replaces them.
        """
        self.observers.append(observer)

    def remove_observer(self, observer: SpeechCallbacks) -> None:
        if observer in self.observers:
            self.observers.remove(observer)

    # Backend events

    def _handle_transcript(self, result: TranscriptResult) -> None:
        if not result.is_final:
            if self.state != SpeechState.LISTENING:
                return
            if not self.options.partial_results:
                logger.debug("Partial results disabled, dropping partial transcript")
                return
            logger.debug(f"Partial transcript: '{result.transcript}'")
            self._dispatch("on_result", result)
            return

        if not self.is_listening():
            return
        logger.info(f"Final transcript: '{result.transcript}' (confidence {result.confidence:.2f})")
        self._release_backend()
        self._set_state(SpeechState.IDLE)
        self._dispatch("on_result", result)
        self._dispatch("on_end")

    def _handle_processing(self) -> None:
        if self.state == SpeechState.LISTENING:
            self._set_state(SpeechState.PROCESSING)

    def _handle_finished(self) -> None:
        if not self.is_listening():
            return
        logger.info("Backend finished without a final transcript")
        self._release_backend()
        self._set_state(SpeechState.IDLE)
        self._dispatch("on_end")

    def _handle_timeout(self, cycle: int) -> None:
        self._timeout_handle = None
        if cycle == self._cycle and self.state == SpeechState.LISTENING:
            logger.info(f"Listening timed out after {self.options.timeout_ms}ms")
            self.stop()

    def _fail(self, error: SpeechError) -> None:
        logger.error(f"Speech session error: {error}")
        self._release_backend()
        self._set_state(SpeechState.ERROR)
        self.last_error = error
        self._dispatch("on_error", error)

    # Internals

    def _set_state(self, state: SpeechState) -> None:
        self._cancel_timeout()
        if state != self.state:
            logger.info(f"Speech session: {self.state.value} -> {state.value}")
        self.state = state

    def _cancel_timeout(self) -> None:
        handle, self._timeout_handle = self._timeout_handle, None
        if handle is not None:
            handle.cancel()

    def _release_backend(self) -> None:
        backend, self.active_backend = self.active_backend, None
        if backend is None:
            return
        try:
            backend.deactivate()
        except Exception as e:
            logger.warning(f"Error deactivating {backend.name} backend: {e}")

    def _dispatch(self, name: str, *args: Any) -> None:
        for receiver in [self.callbacks, *self.observers]:
            callback = getattr(receiver, name)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Speech session {name} callback failed")


def create_speech_session(
    callbacks: Optional[SpeechCallbacks] = None,
    options: Optional[SpeechOptions] = None,
    config=None,
    platform: Optional[PlatformInfo] = None,
    scheduler: Optional[Scheduler] = None,
) -> SpeechSession:
    """Create a speech session with sensible defaults.

    Args:
        callbacks: Session callbacks
        options: Explicit options; otherwise read from `config`, or
            en-US with a 15 second timeout and partial results
        config: Voice2TaskConfig used for options, platform and backends
        platform: Host capabilities (read from `config` if None)
        scheduler: Time source (the asyncio loop if None)

    Returns:
        Configured SpeechSession
    """
    if options is None:
        if config is not None:
            options = SpeechOptions.from_config(config)
        else:
            options = SpeechOptions(language="en-US", timeout_ms=15000, partial_results=True)
    if platform is None:
        platform = PlatformInfo.from_config(config) if config is not None else PlatformInfo()
    scheduler = scheduler or LoopScheduler()

    if config is not None:
        selector = BackendSelector.from_config(config, platform, scheduler)
    else:
        selector = BackendSelector(platform, scheduler)

    return SpeechSession(
        callbacks=callbacks,
        options=options,
        platform=platform,
        backend_selector=selector,
        scheduler=scheduler,
    )
