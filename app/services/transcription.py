"""Transcription gateway backed by the Sarvam AI speech-to-text API."""

import base64
import binascii
import logging
from dataclasses import dataclass

from app.errors import InvalidInput
from app.services.sarvam import SarvamClient, get_sarvam_client

logger = logging.getLogger("parley")

AUTO_LANGUAGE = "auto"
# Sarvam's language_code value that asks for provider-side detection
PROVIDER_AUTO_DETECT = "unknown"


@dataclass
class TranscriptionResult:
    """Recognized text. ``text`` is empty when the clip holds no speech."""

    text: str
    language: str
    confidence: float = 0.0


def decode_audio(audio_data: str | None) -> bytes:
    """Decode a base64 audio payload. Raises InvalidInput when missing or malformed."""
    if not audio_data:
        raise InvalidInput("Audio data is required")
    try:
        return base64.b64decode(audio_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"Audio data is not valid base64: {e}") from e


class TranscriptionService:
    """Forwards recorded audio to the STT provider."""

    PATH = "/speech-to-text"

    def __init__(self, client: SarvamClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> SarvamClient:
        return self._client or get_sarvam_client()

    async def transcribe(self, audio_data: str | None, language: str | None = None) -> TranscriptionResult:
        """Transcribe base64 ``audio_data``. ``language="auto"`` lets the provider detect it."""
        audio_bytes = decode_audio(audio_data)
        client = self.client

        logger.info("Processing speech-to-text request for language: %s", language or AUTO_LANGUAGE)

        form: dict[str, str] = {}
        if language:
            form["language_code"] = PROVIDER_AUTO_DETECT if language == AUTO_LANGUAGE else language

        result = await client.post_multipart(
            self.PATH,
            files={"file": ("audio.wav", audio_bytes, "audio/wav")},
            data=form,
        )

        hint = language if language and language != AUTO_LANGUAGE else None
        return TranscriptionResult(
            text=result.get("transcript") or "",
            language=result.get("language_code") or hint or "unknown",
            confidence=result.get("confidence") or 0.0,
        )


_transcription_service: TranscriptionService | None = None


def get_transcription_service() -> TranscriptionService:
    """Get singleton transcription service instance."""
    global _transcription_service
    if _transcription_service is None:
        _transcription_service = TranscriptionService()
    return _transcription_service
