"""Conversation message API endpoints."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import CurrentUser, get_current_user, get_websocket_user
from app.rate_limit import SEND_LIMIT, limiter
from app.schemas.message import ChangeNotification, MessageListResponse, MessageResponse
from app.services.message_store import get_message_store
from app.services.orchestrator import PipelineState, get_orchestrator
from app.services.realtime import get_change_hub

logger = logging.getLogger("parley")

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])

DEFAULT_MIME_TYPE = "audio/webm"


@router.get("/", response_model=MessageListResponse)
def list_messages(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageListResponse:
    """List the whole conversation, oldest first."""
    messages = get_message_store().list_messages(db)
    return MessageListResponse(
        items=[MessageResponse.model_validate(m) for m in messages],
        total=len(messages),
    )


@router.post("/voice", response_model=MessageResponse)
@limiter.limit(SEND_LIMIT)
async def send_voice_message(
    request: Request,
    file: UploadFile,
    target_language: str | None = Form(None),
    voice: str | None = Form(None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Transcribe, translate and voice a recorded clip, then store it as a message."""
    settings = get_settings()
    audio = await file.read()
    if not audio:
        raise HTTPException(status_code=400, detail="Audio data is required")
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(audio) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"Recording too large ({len(audio) // (1024 * 1024)}MB). Maximum: {settings.MAX_UPLOAD_SIZE_MB}MB",
        )

    def log_progress(state: PipelineState) -> None:
        logger.info("Voice message from user %s: %s", user.user_id, state.value)

    message = await get_orchestrator().send(
        db,
        user_id=user.user_id,
        audio=audio,
        mime_type=(file.content_type or DEFAULT_MIME_TYPE).split(";")[0],
        target_language=target_language,
        voice=voice,
        on_progress=log_progress,
    )
    return MessageResponse.model_validate(message)


@router.websocket("/changes")
async def message_changes(websocket: WebSocket) -> None:
    """Push a notification on every message insert. Clients re-fetch the list on receipt."""
    user = get_websocket_user(websocket)
    if not user:
        await websocket.close(code=4401)
        return

    hub = get_change_hub()
    # Subscribed before the handshake completes so no insert after accept is missed
    queue = hub.subscribe()
    receiver: asyncio.Task | None = None
    try:
        await websocket.accept()
        receiver = asyncio.create_task(websocket.receive_text())
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                await websocket.send_json(ChangeNotification(**getter.result()).model_dump())
            else:
                getter.cancel()
            if receiver in done:
                # Inbound frames are ignored; a disconnect raises here
                receiver.result()
                receiver = asyncio.create_task(websocket.receive_text())
    except WebSocketDisconnect:
        logger.debug("Change subscriber for user %s disconnected", user.user_id)
    finally:
        if receiver is not None:
            receiver.cancel()
        hub.unsubscribe(queue)
