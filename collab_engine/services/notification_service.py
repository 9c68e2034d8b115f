"""
Notification service.

Tells the other party about each successful transition. Dispatch is
fire-and-forget: the transition is already committed and the caller's
response prepared when notifications are scheduled, they run in detached
asyncio tasks, and any failure (identity lookup, network, dispatcher error)
is logged and dropped. Nothing is retried.

The dispatcher itself is an external service reached over HTTP with httpx.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Set

import httpx
from pydantic import BaseModel, Field

from collab_engine.core.config import NOTIFICATION_TIMEOUT, NOTIFICATION_URL
from collab_engine.domain.aggregate import Event
from collab_engine.services import notification_texts

logger = logging.getLogger(__name__)


class NotificationRequest(BaseModel):
    """Payload sent to the notification dispatcher."""

    recipient_id: str
    actor_id: str
    event_type: str
    collaboration_id: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class HttpNotificationDispatcher:
    """Posts notifications to the dispatcher's HTTP endpoint."""

    def __init__(self, url: str = NOTIFICATION_URL, timeout: float = NOTIFICATION_TIMEOUT, transport=None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def notify(self, request: NotificationRequest) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=request.model_dump(mode="json"))
            response.raise_for_status()


class NullNotificationDispatcher:
    """Used when no dispatcher endpoint is configured."""

    async def notify(self, request: NotificationRequest) -> None:
        logger.debug("Notification dispatch disabled, dropping %s", request.event_type)


def build_dispatcher(url: Optional[str] = NOTIFICATION_URL):
    if url:
        return HttpNotificationDispatcher(url)
    return NullNotificationDispatcher()


class Notifier:
    """
    Schedules notifications in background tasks.

    Tasks are tracked so that they are not garbage collected mid-flight and
    so that `drain()` can wait for them (tests, shutdown).
    """

    def __init__(self, dispatcher, identities):
        self.dispatcher = dispatcher
        self.identities = identities
        self._pending: Set[asyncio.Task] = set()

    def schedule(self, collaboration_id: str, events: Iterable[Event]) -> None:
        for event in events:
            task = asyncio.create_task(self._deliver(collaboration_id, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, collaboration_id: str, event: Event) -> None:
        try:
            actor = await self.identities.identify(event.actor_id)
            title, message = notification_texts.render(event.type, actor.name, event.data)
        except Exception:
            logger.warning("Could not render notification %s", event.type, exc_info=True)
            return

        data = {**event.data, "actor_name": actor.name, "actor_avatar": actor.avatar}
        for recipient_id in event.recipient_ids:
            request = NotificationRequest(
                recipient_id=recipient_id,
                actor_id=event.actor_id,
                event_type=event.type,
                collaboration_id=collaboration_id,
                title=title,
                message=message,
                data=data,
            )
            try:
                await self.dispatcher.notify(request)
            except Exception:
                logger.warning(
                    "Notification %s to %s for collaboration %s failed",
                    event.type,
                    recipient_id,
                    collaboration_id,
                    exc_info=True,
                )
