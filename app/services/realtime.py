"""In-process change notifications for the message table."""

import asyncio
import logging

logger = logging.getLogger("parley")

INSERT_EVENT = {"event": "INSERT", "table": "message"}


class MessageChangeHub:
    """Fans out a "go re-fetch" notification to every subscriber on each insert.

    Subscribers get their own queue. Notifications carry no row data. Publish
    from the event-loop thread only.
    """

    def __init__(self, max_pending: int = 100) -> None:
        self.max_pending = max_pending
        self._subscribers: set[asyncio.Queue] = set()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish_insert(self) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(dict(INSERT_EVENT))
            except asyncio.QueueFull:
                # A backlog already means "re-fetch"; one more adds nothing
                logger.debug("Subscriber queue full, dropping duplicate change notification")


_change_hub: MessageChangeHub | None = None


def get_change_hub() -> MessageChangeHub:
    """Get singleton change hub instance."""
    global _change_hub
    if _change_hub is None:
        _change_hub = MessageChangeHub()
    return _change_hub
