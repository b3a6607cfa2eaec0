"""Speech synthesis gateway backed by the Sarvam AI text-to-speech API."""

import logging
from dataclasses import dataclass

from app.config import get_settings
from app.errors import InvalidInput, UpstreamEmptyResult
from app.services.sarvam import SarvamClient, get_sarvam_client

logger = logging.getLogger("parley")


@dataclass
class SynthesisResult:
    audio_content: str  # base64 WAV
    language: str
    duration: float = 0.0


class SynthesisService:
    """Forwards text to the TTS provider with a fixed voice profile."""

    PATH = "/text-to-speech"
    MODEL = "bulbul:v1"
    SAMPLE_RATE = 8000
    PITCH = 0
    PACE = 1.0
    LOUDNESS = 1.0

    def __init__(self, client: SarvamClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> SarvamClient:
        return self._client or get_sarvam_client()

    async def synthesize(self, text: str | None, language: str | None = None, voice: str | None = None) -> SynthesisResult:
        """Synthesize ``text``. Raises UpstreamEmptyResult when the provider returns no audio."""
        if not text:
            raise InvalidInput("Text is required")
        client = self.client

        settings = get_settings()
        language = language or settings.DEFAULT_TTS_LANGUAGE
        voice = voice or settings.DEFAULT_TTS_VOICE

        logger.info("Generating TTS for language %s: %s", language, text)

        result = await client.post_json(
            self.PATH,
            {
                "inputs": [text],
                "target_language_code": language,
                "speaker": voice,
                "pitch": self.PITCH,
                "pace": self.PACE,
                "loudness": self.LOUDNESS,
                "speech_sample_rate": self.SAMPLE_RATE,
                "enable_preprocessing": True,
                "model": self.MODEL,
            },
        )

        audios = result.get("audios") or []
        if not audios or not audios[0]:
            raise UpstreamEmptyResult("No audio data received from Sarvam AI")

        return SynthesisResult(
            audio_content=audios[0],
            language=language,
            duration=result.get("duration") or 0.0,
        )


_synthesis_service: SynthesisService | None = None


def get_synthesis_service() -> SynthesisService:
    """Get singleton synthesis service instance."""
    global _synthesis_service
    if _synthesis_service is None:
        _synthesis_service = SynthesisService()
    return _synthesis_service
