"""Choice of transcription backend for a listening cycle."""

import logging
from typing import Callable, Optional

import aiohttp

from .base import AbstractTranscriptionBackend
from .browser_backend import BrowserBackend
from .cloud_backend import CloudBackend
from .google_speech_client import GoogleSpeechClient
from .simulated_backend import SimulatedBackend
from ..audio.capture import AudioCapture
from ..config.cloud import CloudSpeechSettings
from ..models.platform import PlatformInfo
from ..scheduling import Scheduler

logger = logging.getLogger(__name__)


def is_speech_recognition_supported(platform: PlatformInfo) -> bool:
    """Browser-like hosts need a native recognizer; native hosts record directly."""
    if platform.browser_like:
        return platform.has_native_recognizer
    return True


class BackendSelector:
    """Builds exactly one backend per listening cycle.

    Cloud transcription wins when credentials are configured, then a
    native recognizer on browser-like hosts, then the simulator.
    """

    def __init__(
        self,
        platform: PlatformInfo,
        scheduler: Scheduler,
        cloud_settings: Optional[CloudSpeechSettings] = None,
        capture_factory: Callable[[], AudioCapture] = AudioCapture,
        simulated_factory: Optional[Callable[[], SimulatedBackend]] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self.platform = platform
        self.scheduler = scheduler
        self.cloud_settings = cloud_settings
        self.capture_factory = capture_factory
        self.simulated_factory = simulated_factory or (lambda: SimulatedBackend(self.scheduler))
        self.http_session = http_session

    @classmethod
    def from_config(cls, config, platform: PlatformInfo, scheduler: Scheduler) -> "BackendSelector":
        return cls(
            platform,
            scheduler,
            cloud_settings=CloudSpeechSettings.from_config(config),
            capture_factory=lambda: AudioCapture.from_config(config),
            simulated_factory=lambda: SimulatedBackend.from_config(config, scheduler),
        )

    def select(self) -> AbstractTranscriptionBackend:
        if self.cloud_settings is not None and self.cloud_settings.is_configured():
            logger.info("Using cloud transcription backend")
            client = GoogleSpeechClient(self.cloud_settings, self.http_session)
            return CloudBackend(self.cloud_settings, self.capture_factory, client)

        if self.platform.browser_like:
            if self.platform.has_native_recognizer:
                logger.info("Using native browser speech recognition")
                return BrowserBackend(self.platform.recognizer_factory)
            logger.warning("Speech recognition not supported on this platform, using simulated speech")
        else:
            logger.info("Cloud speech not configured, using simulated speech")

        return self.simulated_factory()
