"""Pydantic schemas for message endpoints."""

from datetime import datetime

from pydantic import BaseModel


class MessageResponse(BaseModel):
    id: int
    user_id: int
    original_text: str
    original_language: str
    translated_text: str | None = None
    target_language: str | None = None
    audio_url: str
    translated_audio_url: str | None = None
    audio_duration: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MessageListResponse(BaseModel):
    items: list[MessageResponse]
    total: int


class ChangeNotification(BaseModel):
    event: str
    table: str
