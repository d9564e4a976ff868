"""Main application entry point for voice2task."""

import sys
import asyncio
import argparse
import logging
import uuid
from pathlib import Path
from typing import Optional

from pubsub import pub

from voice2task.errors import SpeechError
from voice2task.services.voice_task_pipeline import PipelineOutcome, VoiceTaskPipeline
from voice2task.transcription.publisher import SpeechEventPublisher
from voice2task.ui.task_console import ConsoleTaskSink

from .config import Voice2TaskConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = Voice2TaskConfig(config_path)
        # Set up logging (command line overrides config)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.pipeline: Optional[VoiceTaskPipeline] = None

    def init(self, max_tasks: Optional[int] = None, min_task_length: Optional[int] = None):
        logger.info("Initializing services...")
        if max_tasks is not None:
            self.config.set('parsing.max_tasks', max_tasks)
        if min_task_length is not None:
            self.config.set('parsing.min_task_length', min_task_length)

        logger.info(f"Speech settings: language={self.config.get('speech.language')}, "
                    f"timeout={self.config.get('speech.timeout_ms')}ms")

        self.sink = ConsoleTaskSink()
        self.publisher = SpeechEventPublisher(f"voice2task_{uuid.uuid4().hex}")
        # Subscribed first so the transcript prints before the tasks made from it
        pub.subscribe(self.sink.show_transcript, self.publisher.result_topic)
        pub.subscribe(self._on_error, self.publisher.error_topic)
        self.pipeline = VoiceTaskPipeline(self.sink, config=self.config, publisher=self.publisher,
                                          on_outcome=self.sink.show_outcome)

    async def run(self, duration: Optional[float]) -> Optional[PipelineOutcome]:
        self.sink.console.print("[bold]Listening...[/bold]")
        try:
            return await self.pipeline.listen_once(duration)
        except SpeechError as e:
            logger.error(f"Error in run: {e}")
            return None
        finally:
            self.cleanup()

    def run_text(self, text: str) -> PipelineOutcome:
        try:
            return self.pipeline.process_transcript(text)
        finally:
            self.cleanup()

    def cleanup(self):
        if self.pipeline is None:
            return
        try:
            pub.unsubscribe(self.sink.show_transcript, self.publisher.result_topic)
            pub.unsubscribe(self._on_error, self.publisher.error_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.pipeline.shutdown()
        self.publisher.remove_topics()
        self.pipeline = None

    def _on_error(self, error: Exception) -> None:
        message = error.user_message if isinstance(error, SpeechError) else str(error)
        self.sink.show_error(message)


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voice2task.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("voice2task starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for voice2task."""
    parser = argparse.ArgumentParser(
        description="voice2task - turn one spoken sentence into a list of tasks",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Seconds to listen before finishing the utterance (default: just under the session timeout)"
    )

    parser.add_argument(
        "--text",
        type=str,
        help="Segment this text instead of listening"
    )

    parser.add_argument(
        "--max-tasks",
        type=int,
        help="Maximum number of tasks to create (overrides config)"
    )

    parser.add_argument(
        "--min-task-length",
        type=int,
        help="Minimum characters per task (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="voice2task v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init(args.max_tasks, args.min_task_length)
        if args.text is not None:
            server.run_text(args.text)
        else:
            asyncio.run(server.run(args.duration))
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
