"""Translation gateway backed by the Sarvam AI translate API."""

import logging
from dataclasses import dataclass

from app.errors import InvalidInput
from app.services.sarvam import SarvamClient, get_sarvam_client

logger = logging.getLogger("parley")


@dataclass
class TranslationResult:
    """Translated text.

    When the provider returns nothing, ``translated_text`` echoes the input
    text; callers must treat ``translated_text == text`` as possibly degenerate.
    """

    translated_text: str
    source_language: str | None
    target_language: str


class TranslationService:
    """Forwards text to the MT provider with fixed formality and preprocessing options."""

    PATH = "/translate"
    MODEL = "mayura:v1"
    MODE = "formal"
    SPEAKER_GENDER = "Male"

    def __init__(self, client: SarvamClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> SarvamClient:
        return self._client or get_sarvam_client()

    async def translate(
        self, text: str | None, target_language: str | None, source_language: str | None = None
    ) -> TranslationResult:
        """Translate ``text`` into ``target_language``; the source is auto-detected when omitted."""
        if not text:
            raise InvalidInput("Text is required")
        if not target_language:
            raise InvalidInput("Target language is required")
        client = self.client

        logger.info("Translating from %s to %s: %s", source_language or "auto", target_language, text)

        result = await client.post_json(
            self.PATH,
            {
                "input": text,
                "source_language_code": source_language or "auto-detect",
                "target_language_code": target_language,
                "speaker_gender": self.SPEAKER_GENDER,
                "mode": self.MODE,
                "model": self.MODEL,
                "enable_preprocessing": True,
            },
        )

        translated = result.get("translated_text")
        if not translated:
            logger.warning("Provider returned no translation, echoing original text")
            translated = text

        return TranslationResult(
            translated_text=translated,
            source_language=result.get("source_language_code") or source_language,
            target_language=result.get("target_language_code") or target_language,
        )


_translation_service: TranslationService | None = None


def get_translation_service() -> TranslationService:
    """Get singleton translation service instance."""
    global _translation_service
    if _translation_service is None:
        _translation_service = TranslationService()
    return _translation_service
