"""Append-only message store."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import PersistenceError
from app.models.message import Message
from app.services.realtime import MessageChangeHub, get_change_hub

logger = logging.getLogger("parley")


class MessageStore:
    """Inserts and lists conversation messages. There is no update or delete path."""

    def __init__(self, hub: MessageChangeHub | None = None) -> None:
        self.hub = hub or get_change_hub()

    def insert(
        self,
        db: Session,
        user_id: int,
        original_text: str,
        original_language: str,
        audio_url: str,
        audio_duration: float,
        translated_text: str | None = None,
        target_language: str | None = None,
        translated_audio_url: str | None = None,
    ) -> Message:
        """Append a message and notify subscribers. Raises PersistenceError on write failure."""
        if (translated_text is None) != (target_language is None):
            raise ValueError("translated_text and target_language must be given together")

        message = Message(
            user_id=user_id,
            original_text=original_text,
            original_language=original_language,
            translated_text=translated_text,
            target_language=target_language,
            audio_url=audio_url,
            translated_audio_url=translated_audio_url,
            audio_duration=audio_duration,
        )
        try:
            db.add(message)
            db.commit()
            db.refresh(message)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to save message for user %s: %s", user_id, e)
            raise PersistenceError(f"Failed to save message: {e}") from e

        self.hub.publish_insert()
        return message

    def list_messages(self, db: Session) -> list[Message]:
        """Get the whole conversation, oldest first."""
        return db.query(Message).order_by(Message.created_at.asc(), Message.id.asc()).all()

    def count(self, db: Session) -> int:
        return db.query(Message).count()


_message_store: MessageStore | None = None


def get_message_store() -> MessageStore:
    """Get singleton message store instance."""
    global _message_store
    if _message_store is None:
        _message_store = MessageStore()
    return _message_store
