"""Pydantic schemas for the speech, translation and synthesis gateways.

Field names follow the camelCase JSON contract of the gateway endpoints.
Required fields are optional here so that a missing value reaches the
gateway and fails as ``InvalidInput`` with the gateway error shape.
"""

from pydantic import BaseModel, ConfigDict, Field

_camel = ConfigDict(populate_by_name=True)


class SpeechToTextRequest(BaseModel):
    model_config = _camel

    audio_data: str | None = Field(default=None, alias="audioData")
    language: str | None = None


class SpeechToTextResponse(BaseModel):
    text: str
    language: str
    confidence: float


class TranslateRequest(BaseModel):
    model_config = _camel

    text: str | None = None
    source_language: str | None = Field(default=None, alias="sourceLanguage")
    target_language: str | None = Field(default=None, alias="targetLanguage")


class TranslateResponse(BaseModel):
    model_config = _camel

    translated_text: str = Field(alias="translatedText")
    source_language: str | None = Field(default=None, alias="sourceLanguage")
    target_language: str = Field(alias="targetLanguage")


class TextToSpeechRequest(BaseModel):
    text: str | None = None
    language: str | None = None
    voice: str | None = None


class TextToSpeechResponse(BaseModel):
    model_config = _camel

    audio_content: str = Field(alias="audioContent")
    language: str
    duration: float


class GatewayError(BaseModel):
    error: str
