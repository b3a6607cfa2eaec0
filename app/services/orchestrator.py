"""Voice message pipeline: transcribe, translate, synthesize, persist."""

import base64
import enum
import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import NoSpeechDetected
from app.models.message import Message
from app.services.message_store import MessageStore, get_message_store
from app.services.synthesis import SynthesisService, get_synthesis_service
from app.services.transcription import AUTO_LANGUAGE, TranscriptionService, get_transcription_service
from app.services.translation import TranslationService, get_translation_service

logger = logging.getLogger("parley")

TRANSLATED_AUDIO_MIME = "audio/wav"


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    TRANSCRIBING = "transcribing"
    TRANSLATING = "translating"
    SYNTHESIZING = "synthesizing"
    PERSISTING = "persisting"
    DONE = "done"


ProgressCallback = Callable[[PipelineState], None]


def to_data_uri(mime_type: str, payload_b64: str) -> str:
    return f"data:{mime_type};base64,{payload_b64}"


def estimate_duration(audio: bytes) -> float:
    """Rough duration from byte size. Not decoded length; do not rely on it."""
    return len(audio) / 1000


class VoiceMessageOrchestrator:
    """Turns one recorded clip into one stored, playable, bilingual message.

    Steps run strictly in order and each awaits the previous one. Any failure
    aborts the send at that step with nothing persisted; there is no retry and
    no cancellation. ``state`` tracks the send in progress; overlapping sends on
    one orchestrator are not prevented.
    """

    def __init__(
        self,
        transcriber: TranscriptionService | None = None,
        translator: TranslationService | None = None,
        synthesizer: SynthesisService | None = None,
        store: MessageStore | None = None,
    ) -> None:
        self.transcriber = transcriber or get_transcription_service()
        self.translator = translator or get_translation_service()
        self.synthesizer = synthesizer or get_synthesis_service()
        self.store = store or get_message_store()
        self.state = PipelineState.IDLE

    def _enter(self, state: PipelineState, on_progress: ProgressCallback | None) -> None:
        self.state = state
        logger.debug("Voice message pipeline -> %s", state.value)
        if on_progress:
            on_progress(state)

    async def send(
        self,
        db: Session,
        user_id: int,
        audio: bytes,
        mime_type: str = "audio/webm",
        target_language: str | None = None,
        voice: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Message:
        """Run the full pipeline for ``audio`` and return the persisted message."""
        settings = get_settings()
        target_language = target_language or settings.DEFAULT_TARGET_LANGUAGE
        voice = voice or settings.DEFAULT_TTS_VOICE

        try:
            audio_b64 = base64.b64encode(audio).decode("ascii")

            self._enter(PipelineState.TRANSCRIBING, on_progress)
            transcription = await self.transcriber.transcribe(audio_b64, language=AUTO_LANGUAGE)
            if not transcription.text:
                raise NoSpeechDetected("No speech detected in audio")

            translated_text: str | None = None
            translated_audio_b64: str | None = None
            if transcription.language != target_language:
                self._enter(PipelineState.TRANSLATING, on_progress)
                translation = await self.translator.translate(
                    transcription.text,
                    target_language=target_language,
                    source_language=transcription.language,
                )
                translated_text = translation.translated_text or None

            if translated_text:
                self._enter(PipelineState.SYNTHESIZING, on_progress)
                speech = await self.synthesizer.synthesize(translated_text, language=target_language, voice=voice)
                translated_audio_b64 = speech.audio_content

            self._enter(PipelineState.PERSISTING, on_progress)
            message = self.store.insert(
                db,
                user_id=user_id,
                original_text=transcription.text,
                original_language=transcription.language,
                translated_text=translated_text,
                target_language=target_language if translated_text else None,
                audio_url=to_data_uri(mime_type, audio_b64),
                translated_audio_url=(
                    to_data_uri(TRANSLATED_AUDIO_MIME, translated_audio_b64) if translated_audio_b64 else None
                ),
                audio_duration=estimate_duration(audio),
            )

            self._enter(PipelineState.DONE, on_progress)
            logger.info(
                "Voice message %s saved (%s -> %s)",
                message.id,
                transcription.language,
                target_language if translated_text else transcription.language,
            )
            return message
        except Exception as e:
            logger.error("Error sending voice message during %s: %s", self.state.value, e)
            raise
        finally:
            self.state = PipelineState.IDLE


_orchestrator: VoiceMessageOrchestrator | None = None


def get_orchestrator() -> VoiceMessageOrchestrator:
    """Get singleton orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = VoiceMessageOrchestrator()
    return _orchestrator
