"""Google Speech-to-Text REST client for recorded audio artifacts."""

import asyncio
import base64
import time
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp

from ..audio.encoding import audio_encoding_for
from ..config.cloud import CloudSpeechSettings
from ..errors import NetworkFailureError
from ..models.speech import TranscriptResult

logger = logging.getLogger(__name__)


class GoogleSpeechClient:
    """Uploads one audio file to the `speech:recognize` endpoint."""

    service_name = "Google Speech-to-Text"

    def __init__(self, settings: CloudSpeechSettings, session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            settings: Credentials, endpoint and model
            session: Shared HTTP session; a short-lived one is opened per request if None
        """
        self.settings = settings
        self.session = session

    async def transcribe_file(self, path: str, sample_rate: int, language: str) -> TranscriptResult:
        """Transcribe a recorded audio file.

        Args:
            path: Audio artifact; its extension selects the encoding label
            sample_rate: Actual sample rate of the artifact
            language: BCP-47 language code

        Returns:
            Final TranscriptResult; an empty no-speech result if nothing was recognized

        Raises:
            NetworkFailureError: on transport, HTTP or API errors
        """
        start_time = time.time()
        audio_bytes = await asyncio.to_thread(Path(path).read_bytes)
        request = self.build_request(audio_bytes, audio_encoding_for(path), sample_rate, language)
        logger.debug(f"Uploading {len(audio_bytes)} bytes to {self.service_name} "
                     f"(encoding={request['config']['encoding']}, rate={sample_rate}, language={language})")

        body = await self._post(request)
        result = self.parse_response(body)
        logger.info(f"Transcription finished in {time.time() - start_time:.3f}s "
                    f"(confidence: {result.confidence:.2f})")
        return result

    def build_request(self, audio_bytes: bytes, encoding: str, sample_rate: int, language: str) -> Dict[str, Any]:
        return {
            "config": {
                "encoding": encoding,
                "sampleRateHertz": sample_rate,
                "languageCode": language,
                "enableAutomaticPunctuation": True,
                "model": self.settings.model,
            },
            "audio": {
                "content": base64.b64encode(audio_bytes).decode("ascii"),
            },
        }

    def parse_response(self, body: Dict[str, Any]) -> TranscriptResult:
        """Take the first alternative of the first result as the final transcript."""
        if body.get("error"):
            error = body["error"]
            message = error.get("message", "Unknown error")
            logger.error(f"{self.service_name} returned an error: {error}")
            raise NetworkFailureError(f"API Error: {message}", status=error.get("code"))

        results = body.get("results") or []
        if not results or not results[0].get("alternatives"):
            logger.info("--- NO SPEECH DETECTED ---")
            return TranscriptResult.no_speech_detected(backend="cloud")

        alternative = results[0]["alternatives"][0]
        transcript = (alternative.get("transcript") or "").strip()
        confidence = alternative.get("confidence", 0.0)
        logger.debug(f"Transcript='{transcript}' (conf={confidence}, "
                     f"total_alternatives={len(results[0]['alternatives'])})")
        return TranscriptResult(transcript, confidence, True, no_speech=not transcript, backend="cloud")

    async def _post(self, request: Dict[str, Any]) -> Dict[str, Any]:
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds)
        session = self.session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession(timeout=timeout)

        try:
            async with session.post(
                self.settings.endpoint,
                params={"key": self.settings.api_key},
                json=request,
                timeout=timeout,
            ) as response:
                if response.status < 200 or response.status >= 300:
                    raise NetworkFailureError(
                        f"API request failed: {response.status} {response.reason}",
                        status=response.status,
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise NetworkFailureError(f"API request failed: {e}", cause=e) from e
        except asyncio.TimeoutError as e:
            raise NetworkFailureError(
                f"API request timed out after {self.settings.request_timeout_seconds}s", cause=e
            ) from e
        finally:
            if owns_session:
                await session.close()
