"""Tests for the speech-to-text, translation and text-to-speech gateways."""

import base64

import pytest
from fastapi.testclient import TestClient

import main
from app.config import get_settings
from app.errors import ConfigMissing, InvalidInput, UpstreamEmptyResult, UpstreamError
from app.services.sarvam import get_sarvam_client, reset_sarvam_client
from app.services.synthesis import SynthesisService
from app.services.transcription import TranscriptionService, decode_audio
from app.services.translation import TranslationService

from conftest import TTS_AUDIO_B64, FakeSarvam

AUDIO_B64 = base64.b64encode(b"RIFF....WAVEfmt ").decode("ascii")


@pytest.fixture(name="no_sarvam_key")
def no_sarvam_key_fixture(monkeypatch):
    """Server configuration without a provider credential."""
    monkeypatch.setattr(get_settings(), "SARVAM_API_KEY", "")
    reset_sarvam_client(None)
    yield
    reset_sarvam_client(None)


class TestSpeechToText:
    """Tests for the speech-to-text gateway."""

    def test_transcribes_audio(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Returns the provider transcript under the gateway field names."""
        sarvam.respond("/speech-to-text", {"transcript": "namaste", "language_code": "hi-IN", "confidence": 0.8})

        response = client.post(
            "/functions/v1/speech-to-text",
            json={"audioData": AUDIO_B64, "language": "hi-IN"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"text": "namaste", "language": "hi-IN", "confidence": 0.8}

    def test_sends_multipart_wav_with_key(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Audio goes up as a multipart WAV file with the subscription key header."""
        client.post("/functions/v1/speech-to-text", json={"audioData": AUDIO_B64, "language": "en"}, headers=auth_headers)

        request = sarvam.calls("/speech-to-text")[0]
        assert request.headers["api-subscription-key"] == "test-key"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="audio.wav"' in request.content
        assert b"RIFF....WAVEfmt " in request.content
        assert b'name="language_code"' in request.content

    def test_auto_language_asks_provider_to_detect(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """``auto`` is forwarded as the provider's detection value."""
        client.post(
            "/functions/v1/speech-to-text", json={"audioData": AUDIO_B64, "language": "auto"}, headers=auth_headers
        )
        assert b"unknown" in sarvam.calls("/speech-to-text")[0].content

    def test_missing_fields_fall_back(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Without a detected language the hint is used; confidence defaults to zero."""
        sarvam.respond("/speech-to-text", {"transcript": "hola"})

        response = client.post(
            "/functions/v1/speech-to-text", json={"audioData": AUDIO_B64, "language": "es"}, headers=auth_headers
        )
        assert response.json() == {"text": "hola", "language": "es", "confidence": 0.0}

    def test_unknown_language_without_hint(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """No detected language and no hint reports ``unknown``."""
        sarvam.respond("/speech-to-text", {"transcript": ""})

        response = client.post("/functions/v1/speech-to-text", json={"audioData": AUDIO_B64}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["text"] == ""
        assert response.json()["language"] == "unknown"

    def test_missing_audio_is_invalid_input(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """No audio answers the gateway error shape and never reaches the provider."""
        response = client.post("/functions/v1/speech-to-text", json={"language": "en"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "Audio data is required"}
        assert sarvam.requests == []

    def test_malformed_base64_is_invalid_input(self):
        """Audio that does not decode is rejected before any request."""
        with pytest.raises(InvalidInput):
            decode_audio("not base64!!")


class TestTranslate:
    """Tests for the translation gateway."""

    def test_translates_text(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Returns the translation with the requested languages."""
        sarvam.respond("/translate", {"translated_text": "Hello, how are you?"})

        response = client.post(
            "/functions/v1/translate-text",
            json={"text": "नमस्ते, आप कैसे हैं?", "sourceLanguage": "hi-IN", "targetLanguage": "en-IN"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {
            "translatedText": "Hello, how are you?",
            "sourceLanguage": "hi-IN",
            "targetLanguage": "en-IN",
        }

    def test_sends_fixed_options(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Formality, model and preprocessing are fixed; the source defaults to auto-detect."""
        client.post(
            "/functions/v1/translate-text", json={"text": "hello", "targetLanguage": "hi-IN"}, headers=auth_headers
        )
        assert sarvam.json_body("/translate") == {
            "input": "hello",
            "source_language_code": "auto-detect",
            "target_language_code": "hi-IN",
            "speaker_gender": "Male",
            "mode": "formal",
            "model": "mayura:v1",
            "enable_preprocessing": True,
        }

    def test_empty_translation_echoes_input(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """When the provider returns no translation the input text comes back."""
        sarvam.respond("/translate", {})

        response = client.post(
            "/functions/v1/translate-text",
            json={"text": "nothing to translate", "targetLanguage": "en"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["translatedText"] == "nothing to translate"

    def test_missing_text(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        response = client.post("/functions/v1/translate-text", json={"targetLanguage": "en"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "Text is required"}

    def test_missing_target_language(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        response = client.post("/functions/v1/translate-text", json={"text": "hello"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "Target language is required"}
        assert sarvam.requests == []


class TestTextToSpeech:
    """Tests for the text-to-speech gateway."""

    def test_synthesizes_audio(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Returns the first audio payload and the language used."""
        response = client.post(
            "/functions/v1/text-to-speech", json={"text": "hello", "language": "en-IN"}, headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["audioContent"] == TTS_AUDIO_B64
        assert data["language"] == "en-IN"
        assert data["duration"] == 0.0

    def test_default_voice_profile(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """Language and voice default from configuration; the voice profile is fixed."""
        client.post("/functions/v1/text-to-speech", json={"text": "hello"}, headers=auth_headers)

        assert sarvam.json_body("/text-to-speech") == {
            "inputs": ["hello"],
            "target_language_code": "hi-IN",
            "speaker": "meera",
            "pitch": 0,
            "pace": 1.0,
            "loudness": 1.0,
            "speech_sample_rate": 8000,
            "enable_preprocessing": True,
            "model": "bulbul:v1",
        }

    def test_no_audio_is_empty_result(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """A success response without audio is an error, never empty audio."""
        sarvam.respond("/text-to-speech", {"audios": []})

        response = client.post("/functions/v1/text-to-speech", json={"text": "hello"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "No audio data received from Sarvam AI"}

    def test_missing_text(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        response = client.post("/functions/v1/text-to-speech", json={"language": "en"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "Text is required"}


class TestGatewayTransport:
    """Tests for CORS, preflight and provider failures."""

    def test_preflight_answers_ok(self, client: TestClient):
        """OPTIONS answers ``ok`` with CORS headers and no auth."""
        response = client.options("/functions/v1/speech-to-text")
        assert response.status_code == 200
        assert response.text == "ok"
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-headers"] == "authorization, x-client-info, apikey, content-type"

    def test_cors_on_success_and_error(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        ok = client.post("/functions/v1/text-to-speech", json={"text": "hello"}, headers=auth_headers)
        failed = client.post("/functions/v1/text-to-speech", json={}, headers=auth_headers)
        assert ok.headers["access-control-allow-origin"] == "*"
        assert failed.headers["access-control-allow-origin"] == "*"

    def test_upstream_error_carries_status_and_body(self, client: TestClient, auth_headers: dict, sarvam: FakeSarvam):
        """A provider failure is reported once, with its status and body, and not retried."""
        sarvam.respond("/translate", "quota exceeded", status=429)

        response = client.post(
            "/functions/v1/translate-text", json={"text": "hello", "targetLanguage": "hi-IN"}, headers=auth_headers
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Sarvam AI error: 429 - quota exceeded"}
        assert len(sarvam.calls("/translate")) == 1

    def test_missing_credential(self, client: TestClient, auth_headers: dict, no_sarvam_key):
        """Without a configured key every gateway fails with the gateway error shape."""
        response = client.post("/functions/v1/text-to-speech", json={"text": "hello"}, headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "SARVAM_API_KEY not configured"}


class TestGatewayServices:
    """Service-level behavior, independent of HTTP."""

    @pytest.mark.asyncio
    async def test_upstream_error_attributes(self, sarvam: FakeSarvam):
        sarvam.respond("/speech-to-text", "bad audio", status=400)

        with pytest.raises(UpstreamError) as exc_info:
            await TranscriptionService().transcribe(AUDIO_B64, language="en")
        assert exc_info.value.status == 400
        assert exc_info.value.body == "bad audio"

    @pytest.mark.asyncio
    async def test_empty_audio_list(self, sarvam: FakeSarvam):
        sarvam.respond("/text-to-speech", {"audios": [""]})

        with pytest.raises(UpstreamEmptyResult):
            await SynthesisService().synthesize("hello")

    @pytest.mark.asyncio
    async def test_translation_reports_provider_languages(self, sarvam: FakeSarvam):
        sarvam.respond(
            "/translate",
            {"translated_text": "hello", "source_language_code": "hi-IN", "target_language_code": "en-IN"},
        )

        result = await TranslationService().translate("नमस्ते", target_language="en-IN")
        assert result.translated_text == "hello"
        assert result.source_language == "hi-IN"

    def test_client_requires_key(self, no_sarvam_key):
        with pytest.raises(ConfigMissing):
            get_sarvam_client()


class TestStartupConfig:
    """Provider credential checks at application startup."""

    @pytest.mark.asyncio
    async def test_missing_key_fails_startup_in_production(self, no_sarvam_key, monkeypatch):
        monkeypatch.setattr(get_settings(), "APP_ENV", "production")

        with pytest.raises(ConfigMissing, match="SARVAM_API_KEY not configured"):
            async with main.lifespan(main.app):
                pass

    @pytest.mark.asyncio
    async def test_client_built_once_at_startup(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "APP_ENV", "production")
        reset_sarvam_client(None)

        async with main.lifespan(main.app):
            client = get_sarvam_client()
            assert get_sarvam_client() is client

    @pytest.mark.asyncio
    async def test_test_env_defers_to_first_request(self, no_sarvam_key):
        async with main.lifespan(main.app):
            pass
