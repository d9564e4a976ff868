"""Speech event publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.speech import SpeechCallbacks, TranscriptResult

logger = logging.getLogger(__name__)


class SpeechEventPublisher:
    """Publishes speech session events using pubsub.pub.

    Topics are `<prefix>.start`, `<prefix>.result` (result=...),
    `<prefix>.end` and `<prefix>.error` (error=...).
    """

    def __init__(self, topic_prefix: str = "speech"):
        """Initialize speech event publisher.

        Args:
            topic_prefix: Parent pub/sub topic for this session's events
        """
        self.topic_prefix = topic_prefix
        self.start_topic = f"{topic_prefix}.start"
        self.result_topic = f"{topic_prefix}.result"
        self.end_topic = f"{topic_prefix}.end"
        self.error_topic = f"{topic_prefix}.error"
        logger.info(f"SpeechEventPublisher initialized with topic prefix: {topic_prefix}")

    def publish_start(self) -> None:
        pub.sendMessage(self.start_topic)
        logger.debug("Published speech start")

    def publish_result(self, result: TranscriptResult) -> None:
        """Publish a transcript to the result topic.

        Args:
            result: Partial or final TranscriptResult
        """
        pub.sendMessage(self.result_topic, result=result)
        logger.debug(f"Published {'final' if result.is_final else 'partial'} transcript: '{result.transcript}'")

    def publish_end(self) -> None:
        pub.sendMessage(self.end_topic)
        logger.debug("Published speech end")

    def publish_error(self, error: Exception) -> None:
        pub.sendMessage(self.error_topic, error=error)
        logger.debug(f"Published speech error: {error}")

    def remove_topics(self) -> None:
        """Delete this publisher's topic subtree from the pub/sub topic tree."""
        if pub.getDefaultTopicMgr().delTopic(self.topic_prefix):
            logger.debug(f"Removed topics under {self.topic_prefix}")

    def get_callbacks(self) -> SpeechCallbacks:
        """Get session callbacks that publish every event.

        Returns:
            SpeechCallbacks routing the four session events to their topics
        """
        return SpeechCallbacks(
            on_start=self.publish_start,
            on_result=self.publish_result,
            on_end=self.publish_end,
            on_error=self.publish_error,
        )
