"""Real-time notification fan-out.

Events are pushed to channels. Every user listens on ``user:<id>`` and
admins also listen on ``admin_room``. A frame on the wire looks like::

    {"event": "booking_status_update_tenant", "data": {...}}

Delivery is best effort and at-most-once: callers commit their database work
first and a failed publish is logged, never raised.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Protocol

import redis.asyncio as redis
from fastapi import WebSocket

from marketplace.config import settings

logger = logging.getLogger(__name__)

ADMIN_CHANNEL = "admin_room"

# Event names
NEW_BOOKING_REQUEST_OWNER = "new_booking_request_owner"
BOOKING_STATUS_UPDATE_TENANT = "booking_status_update_tenant"
NEW_MESSAGE_NOTIFICATION = "new_message_notification"
MESSAGES_READ_UPDATE = "messages_read_update"
ADMIN_NEW_PENDING_LISTING = "admin_new_pending_listing"
ADMIN_PENDING_COUNT_CHANGED = "admin_pending_count_changed"
LISTING_STATUS_UPDATED_BY_ADMIN = "listing_status_updated_by_admin"


def user_channel(user_id: int) -> str:
    """Channel key for a single user."""
    return f"user:{user_id}"


class NotificationPublisher(Protocol):
    """The only capability business logic needs for fan-out."""

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None: ...


class ConnectionManager:
    """Registry of live WebSocket connections in this process, by channel."""

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, channels: list[str]) -> None:
        for channel in channels:
            self._channels[channel].add(websocket)
        await websocket.accept()
        logger.info(f"WebSocket joined channels {channels}")

    def disconnect(self, websocket: WebSocket) -> None:
        for channel in list(self._channels):
            members = self._channels[channel]
            members.discard(websocket)
            if not members:
                del self._channels[channel]

    def connection_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        """Send the event to every connection in the channel."""
        connections = list(self._channels.get(channel, ()))
        if not connections:
            logger.debug(f"No listeners on {channel}, dropping {event}")
            return

        frame = {"event": event, "data": payload}
        for websocket in connections:
            try:
                await websocket.send_json(frame)
            except Exception as e:
                logger.warning(f"Dropping connection on {channel} after failed send: {e}")
                self.disconnect(websocket)


class RedisNotificationBroker:
    """Publishes through Redis pub/sub so every worker reaches its own sockets.

    Each worker runs one broker. Events published anywhere are relayed into
    the worker-local ConnectionManager. A lost Redis connection is retried
    with exponential backoff until the broker is stopped.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        redis_url: str | None = None,
        redis_channel: str | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self.manager = manager
        self.redis_channel = redis_channel or settings.notification_redis_channel
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._redis = redis.from_url(
            redis_url or settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"channel": channel, "event": event, "data": payload}, default=str)
        await self._redis.publish(self.redis_channel, message)

    async def start(self) -> None:
        self._listener = asyncio.create_task(self._run())

    async def _run(self) -> None:
        """Keep a subscription alive, resubscribing after Redis errors."""
        delay = self.reconnect_delay
        while True:
            try:
                self._pubsub = self._redis.pubsub()
                await self._pubsub.subscribe(self.redis_channel)
                logger.info(f"Notification broker subscribed to {self.redis_channel}")
                delay = self.reconnect_delay
                await self._listen()
                logger.warning("Notification subscription ended, resubscribing")
            except redis.RedisError as e:
                logger.error(f"Notification broker lost Redis, retrying in {delay}s: {e}")
            await self._close_pubsub()
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_reconnect_delay)

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            await self._relay(message.get("data"))

    async def _relay(self, raw: Any) -> None:
        try:
            envelope = json.loads(raw)
            channel, event = envelope["channel"], envelope["event"]
            data = envelope.get("data") or {}
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            logger.warning(f"Ignoring malformed notification envelope: {e!r}")
            return
        if not isinstance(channel, str) or not isinstance(event, str):
            logger.warning(f"Ignoring notification envelope without a channel and event: {raw}")
            return
        await self.manager.publish(channel, event, data)

    async def _close_pubsub(self) -> None:
        if self._pubsub is None:
            return
        pubsub, self._pubsub = self._pubsub, None
        try:
            await pubsub.unsubscribe(self.redis_channel)
            await pubsub.aclose()
        except redis.RedisError as e:
            logger.warning(f"Error closing notification subscription: {e}")

    async def stop(self) -> None:
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
        await self._close_pubsub()
        await self._redis.aclose()


async def publish_safely(
    publisher: NotificationPublisher,
    channel: str,
    event: str,
    payload: dict[str, Any],
) -> None:
    """Publish an event, logging instead of raising on failure."""
    try:
        await publisher.publish(channel, event, payload)
    except Exception as e:
        logger.warning(f"Failed to publish {event} to {channel}: {e}")


async def notify(
    publisher: NotificationPublisher,
    user_id: int,
    event: str,
    payload: dict[str, Any],
) -> None:
    """Publish an event to a single user's channel."""
    await publish_safely(publisher, user_channel(user_id), event, payload)
