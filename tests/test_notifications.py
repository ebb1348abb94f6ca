"""Notification fan-out and the WebSocket endpoint."""

import asyncio
import json

import pytest
import redis.asyncio as redis
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from marketplace.core.security import create_tokens
from marketplace.main import app
from marketplace.services.notification_service import (
    ADMIN_CHANNEL,
    ConnectionManager,
    RedisNotificationBroker,
    notify,
    publish_safely,
    user_channel,
)


class FakeWebSocket:
    def __init__(self, broken: bool = False) -> None:
        self.accepted = False
        self.broken = broken
        self.frames: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict) -> None:
        if self.broken:
            raise RuntimeError("connection closed")
        self.frames.append(data)


class TestConnectionManager:
    async def test_publish_reaches_every_connection_in_channel(self):
        manager = ConnectionManager()
        phone, laptop, stranger = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await manager.connect(phone, ["user:1"])
        await manager.connect(laptop, ["user:1"])
        await manager.connect(stranger, ["user:2"])

        await manager.publish("user:1", "new_message_notification", {"id": 5})

        assert phone.accepted
        assert phone.frames == [{"event": "new_message_notification", "data": {"id": 5}}]
        assert laptop.frames == phone.frames
        assert stranger.frames == []

    async def test_channel_without_listeners_drops_event(self):
        manager = ConnectionManager()

        await manager.publish("user:404", "new_message_notification", {})

        assert manager.connection_count("user:404") == 0

    async def test_failed_send_unregisters_connection(self):
        manager = ConnectionManager()
        healthy, broken = FakeWebSocket(), FakeWebSocket(broken=True)
        await manager.connect(healthy, ["user:1"])
        await manager.connect(broken, ["user:1", ADMIN_CHANNEL])

        await manager.publish("user:1", "booking_status_update_tenant", {"status": "confirmed"})

        assert len(healthy.frames) == 1
        assert manager.connection_count("user:1") == 1
        assert manager.connection_count(ADMIN_CHANNEL) == 0

    async def test_disconnect_leaves_all_channels(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, ["user:9", ADMIN_CHANNEL])

        manager.disconnect(ws)

        assert manager.connection_count("user:9") == 0
        assert manager.connection_count(ADMIN_CHANNEL) == 0


async def test_publish_errors_are_swallowed():
    class Exploding:
        async def publish(self, channel, event, payload):
            raise ConnectionError("broker unreachable")

    await publish_safely(Exploding(), ADMIN_CHANNEL, "admin_new_pending_listing", {})


async def test_notify_targets_user_channel(notifier):
    await notify(notifier, 12, "messages_read_update", {"updated_count": 3})

    assert notifier.events == [("user:12", "messages_read_update", {"updated_count": 3})]
    assert user_channel(12) == "user:12"


class FakePubSub:
    def __init__(self, messages: list[dict] | None = None, error: Exception | None = None) -> None:
        self.messages = messages
        self.error = error
        self.subscribed: list[str] = []
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.subscribed.append(channel)

    async def unsubscribe(self, channel: str) -> None:
        self.subscribed.remove(channel)

    async def aclose(self) -> None:
        self.closed = True

    async def listen(self):
        if self.error is not None:
            raise self.error
        if self.messages is None:
            # Stays open until the listener task is cancelled
            await asyncio.Event().wait()
        for message in self.messages:
            yield message


class FakeRedis:
    def __init__(self, pubsubs: list[FakePubSub] | None = None) -> None:
        self.published: list[tuple[str, str]] = []
        self.pubsubs = list(pubsubs or [])
        self.opened: list[FakePubSub] = []

    async def publish(self, channel: str, message: str) -> None:
        self.published.append((channel, message))

    def pubsub(self) -> FakePubSub:
        pubsub = self.pubsubs.pop(0) if self.pubsubs else FakePubSub()
        self.opened.append(pubsub)
        return pubsub

    async def aclose(self) -> None:
        pass


def redis_message(payload) -> dict:
    return {"type": "message", "data": json.dumps(payload)}


class TestRedisBroker:
    async def test_publish_wraps_event_in_envelope(self):
        broker = RedisNotificationBroker(ConnectionManager(), redis_channel="test:events")
        broker._redis = FakeRedis()

        await broker.publish("user:3", "new_booking_request_owner", {"listing_id": 8})

        [(channel, message)] = broker._redis.published
        assert channel == "test:events"
        assert json.loads(message) == {
            "channel": "user:3",
            "event": "new_booking_request_owner",
            "data": {"listing_id": 8},
        }

    async def test_listener_relays_into_local_connections(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, ["user:3"])
        broker = RedisNotificationBroker(manager)
        envelope = {"channel": "user:3", "event": "new_booking_request_owner", "data": {"x": 1}}
        broker._pubsub = FakePubSub(
            [
                {"type": "subscribe", "data": 1},
                {"type": "message", "data": "not json"},
                {"type": "message", "data": json.dumps(envelope)},
            ]
        )

        await broker._listen()

        assert ws.frames == [{"event": "new_booking_request_owner", "data": {"x": 1}}]

    async def test_listener_skips_envelopes_it_cannot_route(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, ["user:3"])
        broker = RedisNotificationBroker(manager)
        broker._pubsub = FakePubSub(
            [
                redis_message({"event": "new_message_notification"}),
                redis_message([1]),
                redis_message({"channel": ["user:3"], "event": "new_message_notification"}),
                redis_message(
                    {"channel": "user:3", "event": "new_message_notification", "data": {"id": 4}}
                ),
            ]
        )

        await broker._listen()

        assert ws.frames == [{"event": "new_message_notification", "data": {"id": 4}}]

    async def test_listener_resubscribes_after_redis_error(self):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, ["user:3"])
        dropped = FakePubSub(error=redis.ConnectionError("connection reset"))
        healthy = FakePubSub(
            [redis_message({"channel": "user:3", "event": "messages_read_update"})]
        )
        broker = RedisNotificationBroker(manager, redis_channel="test:events", reconnect_delay=0)
        broker._redis = FakeRedis([dropped, healthy])

        await broker.start()
        for _ in range(50):
            if ws.frames:
                break
            await asyncio.sleep(0)
        await broker.stop()

        assert ws.frames == [{"event": "messages_read_update", "data": {}}]
        assert dropped.closed
        assert healthy.closed
        assert broker._redis.opened[:2] == [dropped, healthy]


class TestWebSocketEndpoint:
    def test_invalid_token_is_refused(self):
        client = TestClient(app)

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/ws?token=not-a-jwt"):
                pass

        assert exc_info.value.code == 1008

    def test_missing_token_is_refused(self):
        client = TestClient(app)

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/ws"):
                pass

        assert exc_info.value.code == 1008

    def test_admin_joins_own_and_admin_channels(self):
        client = TestClient(app)
        token = create_tokens(77, "admin")["access_token"]
        manager: ConnectionManager = app.state.connection_manager

        with client.websocket_connect(f"/api/ws?token={token}"):
            assert manager.connection_count("user:77") == 1
            assert manager.connection_count(ADMIN_CHANNEL) == 1

    def test_tenant_joins_only_own_channel(self):
        client = TestClient(app)
        token = create_tokens(78, "tenant")["access_token"]
        manager: ConnectionManager = app.state.connection_manager

        with client.websocket_connect(f"/api/ws?token={token}"):
            assert manager.connection_count("user:78") == 1
            assert manager.connection_count(ADMIN_CHANNEL) == 0
