"""Conversation session: cached message list, sending, playback and live updates."""

import asyncio
import json
import logging
import threading
from collections.abc import Callable

import httpx
import websocket
from pydantic import ValidationError

from app.client.capture import AudioBlob
from app.client.notify import Notifier, log_notifier
from app.client.playback import PlaybackController
from app.errors import VoiceChatError
from app.schemas.message import ChangeNotification, MessageListResponse, MessageResponse

logger = logging.getLogger("parley.client")

MESSAGES_PATH = "/api/v1/messages/"
SEND_PATH = "/api/v1/messages/voice"
CHANGES_PATH = "/api/v1/messages/changes"


class ChangeSubscription:
    """Listens on the realtime channel in a background thread.

    ``on_change`` runs on that thread for every insert notification; it
    should hand off to the event loop rather than do work itself.
    """

    def __init__(
        self,
        url: str,
        token: str,
        on_change: Callable[[], None],
        app_factory: Callable[..., websocket.WebSocketApp] = websocket.WebSocketApp,
    ) -> None:
        self.url = url
        self.on_change = on_change
        self._app = app_factory(
            url,
            header=[f"Authorization: Bearer {token}"],
            on_message=self._on_message,
            on_error=self._on_error,
        )
        self._thread = threading.Thread(target=self._app.run_forever, name="parley-changes", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _on_message(self, ws, message: str) -> None:
        try:
            change = ChangeNotification.model_validate(json.loads(message))
        except (ValueError, ValidationError):
            logger.warning("Ignoring malformed change notification: %r", message)
            return
        if change.event == "INSERT":
            self.on_change()

    def _on_error(self, ws, error) -> None:
        logger.error("Realtime channel error: %s", error)

    def close(self) -> None:
        self._app.close()
        if self._thread.is_alive():
            self._thread.join(timeout=2)


def _websocket_url(base_url: str) -> str:
    scheme, sep, rest = base_url.rstrip("/").partition("://")
    ws_scheme = {"https": "wss", "http": "ws"}.get(scheme, scheme)
    return f"{ws_scheme}{sep}{rest}{CHANGES_PATH}"


class VoiceChatClient:
    """Client-side view of the conversation.

    ``messages`` is a read-only cached copy of the store, refreshed after each
    send and on every realtime push. ``sending_message`` is set for the whole
    send so the UI can gate the record/send control; nothing here stops two
    overlapping sends.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        notifier: Notifier | None = None,
        playback: PlaybackController | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        subscription_factory: Callable[[str, str, Callable[[], None]], ChangeSubscription] = ChangeSubscription,
    ) -> None:
        self.base_url = base_url
        self.notify = notifier or log_notifier
        self.playback = playback or PlaybackController(notifier=self.notify)
        self.messages: list[MessageResponse] = []
        self.loading = True
        self.sending_message = False
        self._token = token
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=None,
            transport=transport,
        )
        self._subscription_factory = subscription_factory
        self._subscription: ChangeSubscription | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def currently_playing(self) -> str | None:
        return self.playback.currently_playing

    async def fetch_messages(self) -> None:
        """Replace the cached list with the store's. On failure the cache is left as it was."""
        try:
            response = await self._http.get(MESSAGES_PATH)
            response.raise_for_status()
            self.messages = MessageListResponse.model_validate(response.json()).items
        except (httpx.HTTPError, ValidationError) as e:
            logger.error("Error fetching messages: %s", e)
            self.notify("Error", "Failed to load messages", "destructive")
        finally:
            self.loading = False

    async def refresh_messages(self) -> None:
        self.loading = True
        await self.fetch_messages()

    async def send_voice_message(self, blob: AudioBlob, target_language: str = "en") -> MessageResponse | None:
        """Send a recording through the pipeline. Returns the stored message, or None after notifying the failure."""
        self.sending_message = True
        try:
            self.notify("Processing", "Converting, translating and voicing your message...", "default")
            response = await self._http.post(
                SEND_PATH,
                files={"file": (f"recording{blob.extension}", blob.data, blob.mime_type)},
                data={"target_language": target_language},
            )
            if response.is_error:
                raise VoiceChatError(_error_detail(response))
            message = MessageResponse.model_validate(response.json())

            self.notify("Success", "Voice message sent successfully!", "default")
            await self.fetch_messages()
            return message
        except (httpx.HTTPError, VoiceChatError, ValueError) as e:
            # ValueError covers both a non-JSON body and a failed model validation
            logger.error("Error sending voice message: %s", e)
            self.notify("Error", str(e) or "Failed to send voice message", "destructive")
            return None
        finally:
            self.sending_message = False

    def play_audio(self, url: str) -> None:
        self.playback.play(url)

    def stop_audio(self) -> None:
        self.playback.stop()

    async def start(self) -> None:
        """Load the conversation and subscribe to inserts."""
        await self.fetch_messages()
        loop = asyncio.get_running_loop()

        def on_change() -> None:
            loop.call_soon_threadsafe(self._schedule_fetch)

        self._subscription = self._subscription_factory(_websocket_url(self.base_url), self._token, on_change)
        self._subscription.start()

    def _schedule_fetch(self) -> None:
        task = asyncio.create_task(self.fetch_messages())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Tear down the subscription and any playing audio together, then the HTTP client."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.playback.stop()
        for task in list(self._pending):
            task.cancel()
        await self._http.aclose()


def _error_detail(response: httpx.Response) -> str:
    fallback = f"Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback
    if not isinstance(body, dict):
        return fallback
    detail = body.get("detail") or body.get("error")
    if isinstance(detail, list):
        # Request validation errors: [{"loc": [...], "msg": "..."}, ...]
        detail = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return str(detail) if detail else fallback
