"""Google Cloud Speech-to-Text settings."""

from dataclasses import dataclass
from typing import Optional
import logging

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_actual_api_key_here"
PLACEHOLDER_PROJECT_ID = "your_project_id_here"
DEFAULT_ENDPOINT = "https://speech.googleapis.com/v1/speech:recognize"


@dataclass
class CloudSpeechSettings:
    """Credentials and request settings for the cloud transcription API."""
    api_key: Optional[str] = None
    project_id: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    model: str = "latest_long"
    request_timeout_seconds: float = 30.0

    @classmethod
    def from_config(cls, config) -> "CloudSpeechSettings":
        return cls(
            api_key=config.get("google_cloud.api_key"),
            project_id=config.get("google_cloud.project_id"),
            endpoint=config.get("google_cloud.endpoint", DEFAULT_ENDPOINT),
            model=config.get("google_cloud.model", "latest_long"),
            request_timeout_seconds=config.get("google_cloud.request_timeout_seconds", 30.0),
        )

    def is_configured(self) -> bool:
        """True when real (non-placeholder) credentials and an endpoint are set."""
        return bool(
            self.api_key
            and self.api_key != PLACEHOLDER_API_KEY
            and self.project_id
            and self.project_id != PLACEHOLDER_PROJECT_ID
            and self.endpoint
        )

    def validate(self) -> None:
        """Raise ValueError naming the first missing setting."""
        if not self.api_key or self.api_key == PLACEHOLDER_API_KEY:
            raise ValueError("Google Cloud API key not configured (google_cloud.api_key / GOOGLE_CLOUD_API_KEY)")
        if not self.project_id or self.project_id == PLACEHOLDER_PROJECT_ID:
            raise ValueError("Google Cloud project ID not configured (google_cloud.project_id / GOOGLE_CLOUD_PROJECT_ID)")
        if not self.endpoint:
            raise ValueError("Speech API endpoint not configured (google_cloud.endpoint / SPEECH_API_ENDPOINT)")
