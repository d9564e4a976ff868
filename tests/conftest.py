"""Pytest configuration and fixtures for voice2task tests."""

import pytest
import tempfile
import logging
import uuid
import wave
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch
import numpy as np
import yaml

from voice2task.models.speech import SpeechCallbacks, SpeechOptions, TranscriptResult
from voice2task.permissions.gate import PermissionResult, PermissionStatus
from voice2task.services.speech_session import SpeechSession
from voice2task.transcription.base import AbstractTranscriptionBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests wiring several components together")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


class ManualTimer:
    def __init__(self, when, seq, callback):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test advances it."""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._seq = 0

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        self._seq += 1
        timer = ManualTimer(self.now + max(delay, 0.0), self._seq, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds):
        """Move the clock forward, firing due callbacks in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self._timers = self.pending
        self.now = target


class RecordingCallbacks:
    """Records session callbacks in the order they fire."""

    def __init__(self):
        self.events = []

    def on_start(self):
        self.events.append(("start", None))

    def on_result(self, result):
        self.events.append(("result", result))

    def on_end(self):
        self.events.append(("end", None))

    def on_error(self, error):
        self.events.append(("error", error))

    @property
    def callbacks(self):
        return SpeechCallbacks(
            on_start=self.on_start,
            on_result=self.on_result,
            on_end=self.on_end,
            on_error=self.on_error,
        )

    @property
    def names(self):
        return [name for name, _ in self.events]

    def count(self, name):
        return self.names.count(name)

    @property
    def results(self):
        return [value for name, value in self.events if name == "result"]

    @property
    def errors(self):
        return [value for name, value in self.events if name == "error"]


class FakeBackend(AbstractTranscriptionBackend):
    """Backend driven by the test through emit helpers."""

    name = "fake"

    def __init__(self, activation_error=None):
        super().__init__()
        self.activation_error = activation_error
        self.activations = 0
        self.deactivations = 0
        self.finalizations = 0
        self.cancellations = 0

    def activate(self, options, listener):
        if self.activation_error is not None:
            raise self.activation_error
        self._begin(options, listener)
        self.activations += 1

    def finalize(self):
        self.finalizations += 1

    def deactivate(self):
        self.active = False
        self.deactivations += 1

    def cancel(self):
        self.cancellations += 1
        self.deactivate()

    def emit_partial(self, text, confidence=0.6):
        self._emit_transcript(TranscriptResult(text, confidence, False, backend=self.name))

    def emit_final(self, text, confidence=0.9):
        self._emit_transcript(TranscriptResult(text, confidence, True, backend=self.name))

    def emit_processing(self):
        self._emit_processing()

    def emit_finished(self):
        self._emit_finished()

    def emit_failure(self, error):
        self._emit_failure(error)


class FakeRecognizer:
    """Stand-in for a host speech recognizer."""

    def __init__(self, start_error=None):
        self.continuous = False
        self.interim_results = False
        self.lang = None
        self.on_result = None
        self.on_error = None
        self.on_end = None
        self.start_error = start_error
        self.started = False
        self.stopped = False
        self.aborted = False

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def stop(self):
        self.stopped = True

    def abort(self):
        self.aborted = True


@pytest.fixture(autouse=True)
def clean_speech_environment(monkeypatch):
    """Keep developer credentials out of the tests."""
    for variable in ("GOOGLE_CLOUD_API_KEY", "GOOGLE_CLOUD_PROJECT_ID", "SPEECH_API_ENDPOINT"):
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers at half scale
    audio_data = (wave_data * 16384).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def sample_audio_file(temp_data_dir, sample_audio_chunk):
    """Create a sample WAV file for testing."""
    file_path = Path(temp_data_dir) / "test_audio.wav"

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)  # Mono
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(16000)  # 16kHz
        for _ in range(10):
            wf.writeframes(sample_audio_chunk)

    return str(file_path)


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def recording_callbacks():
    return RecordingCallbacks()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def fake_backend_factory():
    return FakeBackend


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer()


@pytest.fixture
def fake_recognizer_factory():
    return FakeRecognizer


@pytest.fixture
def topic_prefix():
    """Unique pub/sub topic prefix so tests never share topics."""
    return f"test_{uuid.uuid4().hex}"


@pytest.fixture
def make_permission_gate():
    def _make(granted=True, can_ask_again=False):
        status = PermissionStatus.GRANTED if granted else PermissionStatus.DENIED
        gate = Mock()
        gate.request = AsyncMock(return_value=PermissionResult(granted, can_ask_again, status))
        return gate
    return _make


@pytest.fixture
def make_session(manual_scheduler, recording_callbacks, make_permission_gate):
    """Build a SpeechSession around given backends with a manual clock."""
    def _make(*backends, granted=True, can_ask_again=False, options=None):
        selector = Mock()
        if len(backends) > 1:
            selector.select.side_effect = list(backends)
        else:
            selector.select.return_value = backends[0] if backends else FakeBackend()
        return SpeechSession(
            callbacks=recording_callbacks.callbacks,
            options=options or SpeechOptions(),
            permission_gate=make_permission_gate(granted, can_ask_again),
            backend_selector=selector,
            scheduler=manual_scheduler,
        )
    return _make


@pytest.fixture
def config_file(temp_data_dir):
    """Write a YAML configuration file and return its path."""
    def _write(data):
        path = Path(temp_data_dir) / "voice2task.yaml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)
        return str(path)
    return _write
