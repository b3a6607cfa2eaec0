"""Gateway endpoints adapting Sarvam AI to the app's request/response shapes.

Failures are rendered as ``{"error": message}`` with status 500 by the
``VoiceChatError`` handler in ``main``; CORS headers and ``OPTIONS``
preflight are handled by ``GatewayCorsMiddleware``.
"""

from fastapi import APIRouter, Depends

from app.dependencies import CurrentUser, get_current_user
from app.schemas.gateway import (
    GatewayError,
    SpeechToTextRequest,
    SpeechToTextResponse,
    TextToSpeechRequest,
    TextToSpeechResponse,
    TranslateRequest,
    TranslateResponse,
)
from app.services.synthesis import get_synthesis_service
from app.services.transcription import get_transcription_service
from app.services.translation import get_translation_service

GATEWAY_PREFIX = "/functions/v1"

router = APIRouter(
    prefix=GATEWAY_PREFIX,
    tags=["Gateways"],
    responses={500: {"model": GatewayError}},
)


@router.post("/speech-to-text", response_model=SpeechToTextResponse)
async def speech_to_text(
    body: SpeechToTextRequest,
    user: CurrentUser = Depends(get_current_user),
) -> SpeechToTextResponse:
    """Transcribe base64 audio."""
    result = await get_transcription_service().transcribe(body.audio_data, language=body.language)
    return SpeechToTextResponse(text=result.text, language=result.language, confidence=result.confidence)


@router.post("/translate-text", response_model=TranslateResponse)
async def translate_text(
    body: TranslateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> TranslateResponse:
    """Translate text into the target language."""
    result = await get_translation_service().translate(
        body.text, target_language=body.target_language, source_language=body.source_language
    )
    return TranslateResponse(
        translated_text=result.translated_text,
        source_language=result.source_language,
        target_language=result.target_language,
    )


@router.post("/text-to-speech", response_model=TextToSpeechResponse)
async def text_to_speech(
    body: TextToSpeechRequest,
    user: CurrentUser = Depends(get_current_user),
) -> TextToSpeechResponse:
    """Synthesize speech for text; returns base64 WAV."""
    result = await get_synthesis_service().synthesize(body.text, language=body.language, voice=body.voice)
    return TextToSpeechResponse(audio_content=result.audio_content, language=result.language, duration=result.duration)
