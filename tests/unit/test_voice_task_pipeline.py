"""Unit tests for VoiceTaskPipeline."""

import pytest
from pubsub import pub
from unittest.mock import Mock

from voice2task.errors import BackendError, PermissionDeniedError
from voice2task.models.parsing import ParseOptions, ParseStrategy
from voice2task.models.speech import SpeechOptions, TranscriptResult
from voice2task.parsing.task_segmenter import TaskSegmenter
from voice2task.scheduling import LoopScheduler
from voice2task.services.voice_task_pipeline import (
    NO_SPEECH_MESSAGE,
    NO_TASKS_MESSAGE,
    VoiceTaskPipeline,
)
from voice2task.transcription.publisher import SpeechEventPublisher
from voice2task.transcription.simulated_backend import SimulatedBackend


@pytest.fixture
def task_sink():
    return Mock()


@pytest.fixture
def make_pipeline(make_session, task_sink, topic_prefix):
    pipelines = []

    def _make(*backends, granted=True, segmenter=None, on_outcome=None, options=None):
        session = make_session(*backends, granted=granted, options=options)
        pipeline = VoiceTaskPipeline(
            task_sink,
            session=session,
            segmenter=segmenter,
            publisher=SpeechEventPublisher(topic_prefix),
            on_outcome=on_outcome,
        )
        pipelines.append(pipeline)
        return pipeline

    yield _make
    for pipeline in pipelines:
        pipeline.shutdown()


@pytest.mark.unit
class TestProcessTranscript:

    def test_creates_one_task_per_segment(self, make_pipeline, task_sink):
        pipeline = make_pipeline()

        outcome = pipeline.process_transcript("Buy milk and call mom")

        assert [call.args[0] for call in task_sink.call_args_list] == ["Buy milk", "Call mom"]
        assert outcome.tasks_created == 2
        assert outcome.success is True
        assert outcome.message == "Created 2 tasks from speech"
        assert outcome.parse_result.strategy == ParseStrategy.CONJUNCTION_SPLIT

    def test_single_task_message(self, make_pipeline):
        outcome = make_pipeline().process_transcript("Call the plumber")

        assert outcome.message == "Created 1 task from speech"

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_transcript(self, make_pipeline, task_sink, text):
        outcome = make_pipeline().process_transcript(text)

        assert outcome.message == NO_SPEECH_MESSAGE
        assert outcome.tasks_created == 0
        assert outcome.parse_result is None
        task_sink.assert_not_called()

    def test_no_tasks_found(self, make_pipeline, task_sink):
        segmenter = TaskSegmenter(ParseOptions(preserve_original_on_failure=False))

        outcome = make_pipeline(segmenter=segmenter).process_transcript("unparseable")

        assert outcome.message == NO_TASKS_MESSAGE
        assert outcome.success is False
        task_sink.assert_not_called()

    def test_failing_sink_does_not_stop_other_tasks(self, make_pipeline, task_sink):
        task_sink.side_effect = [RuntimeError("storage full"), None]

        outcome = make_pipeline().process_transcript("Buy milk and call mom")

        assert task_sink.call_count == 2
        assert outcome.tasks_created == 1

    def test_outcomes_are_reported(self, make_pipeline):
        on_outcome = Mock()
        pipeline = make_pipeline(on_outcome=on_outcome)

        outcome = pipeline.process_transcript("Call mom")

        on_outcome.assert_called_once_with(outcome)
        assert pipeline.outcomes == [outcome]


@pytest.mark.unit
class TestSessionIntegration:

    @pytest.mark.asyncio
    async def test_final_transcript_creates_tasks(self, make_pipeline, fake_backend, task_sink):
        pipeline = make_pipeline(fake_backend)
        await pipeline.session.start()

        fake_backend.emit_partial("buy milk")
        fake_backend.emit_final("buy milk and call mom")

        assert [call.args[0] for call in task_sink.call_args_list] == ["Buy milk", "Call mom"]
        assert len(pipeline.outcomes) == 1

    @pytest.mark.asyncio
    async def test_session_callbacks_still_fire(self, make_pipeline, fake_backend, recording_callbacks):
        pipeline = make_pipeline(fake_backend)
        await pipeline.session.start()

        fake_backend.emit_final("call mom")

        assert recording_callbacks.names == ["start", "result", "end"]

    @pytest.mark.asyncio
    async def test_no_speech_result(self, make_pipeline, fake_backend, task_sink):
        pipeline = make_pipeline(fake_backend)
        await pipeline.session.start()

        fake_backend._emit_transcript(TranscriptResult.no_speech_detected(backend="fake"))

        assert pipeline.outcomes[-1].message == NO_SPEECH_MESSAGE
        task_sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_listen_once_with_simulated_speech(self, make_pipeline, task_sink):
        backend = SimulatedBackend(LoopScheduler(), phrases=["Buy milk and call mom"],
                                   min_interval_ms=1, max_interval_ms=5)
        pipeline = make_pipeline(backend)

        outcome = await pipeline.listen_once()

        assert outcome.tasks_created == 2
        assert outcome.transcript == "Buy milk and call mom"
        assert task_sink.call_count == 2

    @pytest.mark.asyncio
    async def test_listen_once_finishes_after_duration(self, make_pipeline, fake_backend, task_sink):
        fake_backend.finalize = lambda: fake_backend.emit_final("Call mom")
        pipeline = make_pipeline(fake_backend)

        outcome = await pipeline.listen_once(duration=0.01)

        assert outcome.parse_result.tasks == ["Call mom"]
        task_sink.assert_called_once_with("Call mom")

    @pytest.mark.asyncio
    async def test_listen_once_backend_failure(self, make_pipeline, fake_backend, task_sink):
        fake_backend.finalize = lambda: fake_backend.emit_failure(BackendError("recognizer crashed"))
        pipeline = make_pipeline(fake_backend)

        outcome = await pipeline.listen_once(duration=0.01)

        assert outcome is None
        task_sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_listen_once_permission_denied(self, make_pipeline):
        pipeline = make_pipeline(granted=False)

        with pytest.raises(PermissionDeniedError):
            await pipeline.listen_once()

    @pytest.mark.asyncio
    async def test_shutdown(self, make_pipeline, fake_backend, task_sink):
        pipeline = make_pipeline(fake_backend)
        await pipeline.session.start()

        pipeline.shutdown()
        pipeline.publisher.publish_result(TranscriptResult("call mom", 0.9, True))

        assert fake_backend.cancellations == 1
        assert pipeline.session.is_listening() is False
        task_sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_callbacks_keeps_creating_tasks(self, make_pipeline, fake_backend, task_sink):
        pipeline = make_pipeline(fake_backend)
        on_result = Mock()
        pipeline.session.update_callbacks(on_result=on_result)

        await pipeline.session.start()
        fake_backend.emit_final("buy milk and call mom")

        assert [call.args[0] for call in task_sink.call_args_list] == ["Buy milk", "Call mom"]
        assert len(pipeline.outcomes) == 1
        on_result.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_session_callbacks_do_not_block_tasks(self, make_pipeline, fake_backend, task_sink):
        fake_backend.finalize = lambda: fake_backend.emit_final("buy milk and call mom")
        pipeline = make_pipeline(fake_backend)
        pipeline.session.update_callbacks(on_result=Mock(side_effect=RuntimeError("ui broke")),
                                          on_end=Mock(side_effect=RuntimeError("ui broke")))

        outcome = await pipeline.listen_once(duration=0.01)

        assert outcome.tasks_created == 2
        assert task_sink.call_count == 2

    @pytest.mark.asyncio
    async def test_listen_once_finishes_before_timeout(self, make_pipeline, fake_backend, task_sink):
        fake_backend.finalize = lambda: fake_backend.emit_final("Call mom")
        pipeline = make_pipeline(fake_backend, options=SpeechOptions(timeout_ms=600))

        outcome = await pipeline.listen_once()

        assert outcome.parse_result.tasks == ["Call mom"]
        assert fake_backend.cancellations == 0
        task_sink.assert_called_once_with("Call mom")

    def test_shutdown_removes_own_topics(self, make_session, task_sink):
        pipeline = VoiceTaskPipeline(task_sink, session=make_session())
        prefix = pipeline.publisher.topic_prefix
        topic_manager = pub.getDefaultTopicMgr()
        assert topic_manager.getTopic(prefix, okIfNone=True) is not None

        pipeline.shutdown()

        assert topic_manager.getTopic(prefix, okIfNone=True) is None
        assert pipeline.session.observers == []

    def test_shutdown_keeps_shared_topics(self, make_pipeline, topic_prefix):
        pipeline = make_pipeline()

        pipeline.shutdown()

        assert pub.getDefaultTopicMgr().getTopic(topic_prefix, okIfNone=True) is not None
