"""Unit tests for the Google Speech-to-Text REST client."""

import asyncio
import base64

import aiohttp
import pytest

from voice2task.config.cloud import CloudSpeechSettings
from voice2task.errors import NetworkFailureError
from voice2task.transcription.google_speech_client import GoogleSpeechClient


class FakeResponse:
    def __init__(self, status=200, body=None, reason="OK"):
        self.status = status
        self.reason = reason
        self.body = body or {}

    async def json(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records posts and answers with a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def settings():
    return CloudSpeechSettings(api_key="test-key", project_id="test-project")


def recognized(transcript, confidence=0.92):
    return {"results": [{"alternatives": [{"transcript": transcript, "confidence": confidence}]}]}


@pytest.mark.unit
class TestGoogleSpeechClient:

    @pytest.mark.asyncio
    async def test_transcribe_file(self, settings, sample_audio_file):
        session = FakeSession(FakeResponse(body=recognized(" Buy milk and call mom ")))
        client = GoogleSpeechClient(settings, session)

        result = await client.transcribe_file(sample_audio_file, 16000, "en-US")

        assert result.transcript == "Buy milk and call mom"
        assert result.confidence == pytest.approx(0.92)
        assert result.is_final is True
        assert result.no_speech is False
        assert result.backend == "cloud"

        url, kwargs = session.calls[0]
        assert url == settings.endpoint
        assert kwargs["params"] == {"key": "test-key"}
        config = kwargs["json"]["config"]
        assert config["encoding"] == "LINEAR16"
        assert config["sampleRateHertz"] == 16000
        assert config["languageCode"] == "en-US"
        assert config["model"] == "latest_long"
        with open(sample_audio_file, "rb") as f:
            assert base64.b64decode(kwargs["json"]["audio"]["content"]) == f.read()

    def test_build_request_uses_given_encoding(self, settings):
        request = GoogleSpeechClient(settings).build_request(b"\x00\x01", "MP4", 44100, "de-DE")

        assert request["config"]["encoding"] == "MP4"
        assert request["config"]["sampleRateHertz"] == 44100
        assert request["config"]["enableAutomaticPunctuation"] is True
        assert request["audio"]["content"] == "AAE="

    @pytest.mark.parametrize("body", [
        {},
        {"results": []},
        {"results": [{"alternatives": []}]},
    ])
    def test_no_speech(self, settings, body):
        result = GoogleSpeechClient(settings).parse_response(body)

        assert result.no_speech is True
        assert result.is_final is True
        assert result.transcript == ""

    def test_empty_transcript_is_no_speech(self, settings):
        result = GoogleSpeechClient(settings).parse_response(recognized("  ", 0.1))

        assert result.no_speech is True
        assert result.is_final is True

    def test_missing_confidence(self, settings):
        body = {"results": [{"alternatives": [{"transcript": "call mom"}]}]}

        result = GoogleSpeechClient(settings).parse_response(body)

        assert result.confidence == 0.0
        assert result.transcript == "call mom"

    def test_api_error_body(self, settings):
        body = {"error": {"code": 400, "message": "Invalid recognition config"}}

        with pytest.raises(NetworkFailureError) as exc_info:
            GoogleSpeechClient(settings).parse_response(body)

        assert str(exc_info.value) == "API Error: Invalid recognition config"
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_http_error_status(self, settings, sample_audio_file):
        session = FakeSession(FakeResponse(status=403, reason="Forbidden"))

        with pytest.raises(NetworkFailureError) as exc_info:
            await GoogleSpeechClient(settings, session).transcribe_file(sample_audio_file, 16000, "en-US")

        assert str(exc_info.value) == "API request failed: 403 Forbidden"
        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_transport_error(self, settings, sample_audio_file):
        session = FakeSession(error=aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(NetworkFailureError) as exc_info:
            await GoogleSpeechClient(settings, session).transcribe_file(sample_audio_file, 16000, "en-US")

        assert isinstance(exc_info.value.cause, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_timeout(self, settings, sample_audio_file):
        session = FakeSession(error=asyncio.TimeoutError())

        with pytest.raises(NetworkFailureError) as exc_info:
            await GoogleSpeechClient(settings, session).transcribe_file(sample_audio_file, 16000, "en-US")

        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_file(self, settings, temp_data_dir):
        client = GoogleSpeechClient(settings, FakeSession())

        with pytest.raises(FileNotFoundError):
            await client.transcribe_file(f"{temp_data_dir}/missing.wav", 16000, "en-US")
