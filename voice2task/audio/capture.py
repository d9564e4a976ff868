"""Bounded microphone recording into a temporary audio artifact."""

import os
import tempfile
import time
import wave
import logging
from threading import Thread, Event
from typing import Callable, Optional
from datetime import datetime

import numpy as np
import pyaudio

from ..models.audio import AudioRecording, AudioStats


logger = logging.getLogger(__name__)


class AudioCapture:
    """Records one utterance from the microphone into a WAV file.

    The stream is opened synchronously by start_recording() so that a
    missing device or refused microphone surfaces to the caller; frames
    are then read on a background thread until stopped or until the
    maximum duration is reached.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        max_duration_seconds: float = 60.0,
        output_directory: Optional[str] = None,
    ):
        """Initialize audio capture.

        Args:
            sample_rate: Audio sample rate (16kHz for speech recognition)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            max_duration_seconds: Recording stops on its own after this long
            output_directory: Where artifacts are written (system temp dir if None)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.max_duration_seconds = max_duration_seconds
        self.output_directory = output_directory or tempfile.gettempdir()

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self.limit_reached = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.peak_level = 0.0

        self.file_path: Optional[str] = None
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._stream = None
        self._wave_file = None
        self._on_limit_reached: Optional[Callable[[], None]] = None
        self._error: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> "AudioCapture":
        return cls(
            sample_rate=config.get("audio.sample_rate", 16000),
            chunk_size=config.get("audio.chunk_size", 1024),
            channels=config.get("audio.channels", 1),
            max_duration_seconds=config.get("audio.max_duration_seconds", 60),
            output_directory=config.get("audio.recordings_directory"),
        )

    def start_recording(self, on_limit_reached: Optional[Callable[[], None]] = None) -> str:
        """Open the microphone and start recording in a background thread.

        Args:
            on_limit_reached: Called from the recording thread when the
                maximum duration stops the recording

        Returns:
            Path of the audio artifact being written
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return self.file_path

        os.makedirs(self.output_directory, exist_ok=True)
        self.file_path = os.path.join(
            self.output_directory, f"speech_recording_{int(time.time() * 1000)}.wav"
        )
        self.stop_event.clear()
        self.limit_reached = False
        self.total_chunks = 0
        self.peak_level = 0.0
        self._error = None
        self._on_limit_reached = on_limit_reached

        try:
            self._stream = self.__open_audio_stream()
            self._wave_file = wave.open(self.file_path, "wb")
            self._wave_file.setnchannels(self.channels)
            self._wave_file.setsampwidth(self.pyaudio_instance.get_sample_size(self.format))
            self._wave_file.setframerate(self.sample_rate)
        except Exception:
            self._close_resources()
            self._delete_file()
            raise

        logger.info(f"Starting audio recording: {self.file_path}")
        self.start_time = datetime.now()
        self.recording_thread = Thread(target=self._record_until_stopped, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()
        return self.file_path

    def stop_recording(self) -> AudioRecording:
        """Stop recording and return the finished artifact."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return AudioRecording(
                handle=self.file_path or "",
                duration_ms=0,
                byte_size=0,
                success=False,
                sample_rate=self.sample_rate,
                channels=self.channels,
                error="No recording in progress",
            )

        logger.info("Stopping audio recording")
        self._join_recording_thread()
        self.is_recording = False

        byte_size = os.path.getsize(self.file_path) if os.path.exists(self.file_path) else 0
        recording = AudioRecording(
            handle=self.file_path,
            duration_ms=int(self.recorded_seconds * 1000),
            byte_size=byte_size,
            success=self._error is None and self.total_chunks > 0,
            sample_rate=self.sample_rate,
            channels=self.channels,
            peak_level=self.peak_level,
            error=self._error,
        )
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}, "
                    f"duration: {recording.duration_ms}ms, size: {byte_size} bytes")
        return recording

    def cancel(self) -> None:
        """Stop recording if needed and delete the artifact."""
        if self.is_recording:
            self._join_recording_thread()
            self.is_recording = False
        self._delete_file()

    @property
    def recorded_seconds(self) -> float:
        return self.total_chunks * self.chunk_size / float(self.sample_rate)

    def __open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        stream = self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def __read_audio_chunk(self) -> bytes:
        audio_chunk = self._stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1

        samples = np.frombuffer(audio_chunk, dtype=np.int16)
        if samples.size:
            level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
            self.peak_level = max(self.peak_level, level)
        return audio_chunk

    def _record_until_stopped(self) -> None:
        """Internal method: recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                self._wave_file.writeframes(self.__read_audio_chunk())
                if self.recorded_seconds >= self.max_duration_seconds:
                    logger.info(f"Maximum recording duration reached ({self.max_duration_seconds}s)")
                    self.limit_reached = True
                    break
        except Exception as e:
            logger.error(f"Audio recording failed: {e}")
            self._error = str(e)
        finally:
            self._close_resources()

        if self.limit_reached and self._on_limit_reached is not None:
            self._on_limit_reached()

    def _join_recording_thread(self) -> None:
        self.stop_event.set()
        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

    def _close_resources(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop_stream()
            stream.close()
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
        wave_file, self._wave_file = self._wave_file, None
        if wave_file is not None:
            wave_file.close()

    def _delete_file(self) -> None:
        if self.file_path and os.path.exists(self.file_path):
            os.remove(self.file_path)
            logger.info(f"Deleted audio recording: {self.file_path}")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.is_recording:
            self.stop_event.set()
