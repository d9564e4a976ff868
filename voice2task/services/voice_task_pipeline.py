"""Pipeline turning final transcripts into created tasks."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from pubsub import pub

from ..models.parsing import ParseOptions, ParseResult
from ..models.speech import TranscriptResult
from ..parsing.task_segmenter import TaskSegmenter
from ..transcription.publisher import SpeechEventPublisher
from .speech_session import SpeechSession, create_speech_session

logger = logging.getLogger(__name__)

NO_SPEECH_MESSAGE = "No speech detected"
NO_TASKS_MESSAGE = "No tasks found"
FINISH_LEAD_SECONDS = 0.5


@dataclass
class PipelineOutcome:
    """What one final transcript turned into."""
    transcript: str
    parse_result: Optional[ParseResult]
    tasks_created: int
    message: str

    @property
    def success(self) -> bool:
        return self.tasks_created > 0


class VoiceTaskPipeline:
    """Binds a speech session's final transcripts to the segmenter and a task sink.

    Session events are re-published on pub/sub topics; the pipeline is
    one subscriber among possibly several.
    """

    def __init__(
        self,
        task_sink: Callable[[str], Any],
        session: Optional[SpeechSession] = None,
        segmenter: Optional[TaskSegmenter] = None,
        publisher: Optional[SpeechEventPublisher] = None,
        config=None,
        on_outcome: Optional[Callable[[PipelineOutcome], Any]] = None,
    ):
        """Initialize the pipeline.

        Args:
            task_sink: Called once per task title
            session: Speech session to follow (created from `config` if None)
            segmenter: Task segmenter (built from `config` if None)
            publisher: Event publisher (unique topic prefix if None)
            config: Voice2TaskConfig for the defaults above
            on_outcome: Called with every PipelineOutcome
        """
        self.task_sink = task_sink
        self.on_outcome = on_outcome
        self._owns_publisher = publisher is None
        self.publisher = publisher or SpeechEventPublisher(f"voice2task_{uuid.uuid4().hex}")
        if segmenter is None:
            segmenter = TaskSegmenter(ParseOptions.from_config(config) if config is not None else None)
        self.segmenter = segmenter
        self.session = session or create_speech_session(config=config)
        self.outcomes: List[PipelineOutcome] = []
        self._cycle_done: Optional[asyncio.Event] = None

        self._observer = self.publisher.get_callbacks()
        self.session.add_observer(self._observer)
        pub.subscribe(self._on_result, self.publisher.result_topic)
        pub.subscribe(self._on_end, self.publisher.end_topic)
        pub.subscribe(self._on_error, self.publisher.error_topic)
        self._subscribed = True
        logger.info(f"VoiceTaskPipeline listening on {self.publisher.topic_prefix}")

    def process_transcript(self, transcript: str) -> PipelineOutcome:
        """Segment a final transcript and create one task per segment.

        Args:
            transcript: Final transcript text

        Returns:
            PipelineOutcome describing what was created
        """
        if not transcript or not transcript.strip():
            logger.info(NO_SPEECH_MESSAGE)
            return self._record(PipelineOutcome(transcript or "", None, 0, NO_SPEECH_MESSAGE))

        parse_result = self.segmenter.parse(transcript)
        if not parse_result.success:
            logger.info(f"{NO_TASKS_MESSAGE} in '{transcript}'")
            return self._record(PipelineOutcome(transcript, parse_result, 0, NO_TASKS_MESSAGE))

        created = 0
        for task in parse_result.tasks:
            try:
                self.task_sink(task)
                created += 1
            except Exception as e:
                logger.error(f"Failed to create task '{task}': {e}")

        message = f"Created {created} task{'s' if created != 1 else ''} from speech"
        logger.info(f"{message} ({parse_result.strategy.value}, confidence {parse_result.confidence})")
        return self._record(PipelineOutcome(transcript, parse_result, created, message))

    async def listen_once(self, duration: Optional[float] = None) -> Optional[PipelineOutcome]:
        """Run one listening cycle and return its outcome.

        Args:
            duration: Seconds to listen before asking for the final
                transcript; just under the session timeout if None

        Returns:
            The outcome of the cycle, or None if it ended without a final transcript

        Raises:
            PermissionDeniedError: if microphone access is refused
        """
        self._cycle_done = asyncio.Event()
        outcomes_before = len(self.outcomes)
        await self.session.start()

        # The session timeout discards captured audio; finish before it fires
        if duration is None:
            duration = max(self.session.options.timeout_seconds - FINISH_LEAD_SECONDS, 0.0)
        try:
            await asyncio.wait_for(self._cycle_done.wait(), timeout=duration)
        except asyncio.TimeoutError:
            self.session.finish()
        await self._cycle_done.wait()

        if len(self.outcomes) > outcomes_before:
            return self.outcomes[-1]
        return None

    def shutdown(self) -> None:
        """Abort any active cycle and stop following the session."""
        if self.session.is_listening():
            self.session.cancel()
        if not self._subscribed:
            return
        self._subscribed = False
        self.session.remove_observer(self._observer)
        try:
            pub.unsubscribe(self._on_result, self.publisher.result_topic)
            pub.unsubscribe(self._on_end, self.publisher.end_topic)
            pub.unsubscribe(self._on_error, self.publisher.error_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        if self._owns_publisher:
            self.publisher.remove_topics()
        logger.info("VoiceTaskPipeline shut down")

    def _on_result(self, result: TranscriptResult) -> None:
        if not result.is_final:
            return
        if result.no_speech:
            self._record(PipelineOutcome(result.transcript, None, 0, NO_SPEECH_MESSAGE))
            return
        self.process_transcript(result.transcript)

    def _on_end(self) -> None:
        if self._cycle_done is not None:
            self._cycle_done.set()

    def _on_error(self, error: Exception) -> None:
        logger.error(f"Speech cycle failed: {error}")
        if self._cycle_done is not None:
            self._cycle_done.set()

    def _record(self, outcome: PipelineOutcome) -> PipelineOutcome:
        self.outcomes.append(outcome)
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome
