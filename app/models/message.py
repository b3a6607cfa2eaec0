"""Conversation message model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text

from app.database import Base


class Message(Base):
    """One turn in the conversation. Rows are append-only: nothing updates or deletes them."""

    __tablename__ = "message"
    __table_args__ = (
        CheckConstraint(
            "(translated_text IS NULL) = (target_language IS NULL)",
            name="ck_message_translation_pair",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    original_text = Column(Text, nullable=False)
    original_language = Column(String(32), nullable=False, default="unknown")
    translated_text = Column(Text, nullable=True)
    target_language = Column(String(32), nullable=True)
    # Inline data-URIs (data:<mime>;base64,...)
    audio_url = Column(Text, nullable=False)
    translated_audio_url = Column(Text, nullable=True)
    audio_duration = Column(Float, nullable=False)  # raw byte size / 1000, not decoded length
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
