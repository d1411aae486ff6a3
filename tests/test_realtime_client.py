"""
Tests for the realtime listener used by floor clients.
"""

import json

import pytest
from unittest.mock import AsyncMock

from utils.notification_store import NotificationLog, NotificationType
from utils.realtime_client import RealtimeListener


class FakeConnection:
    """Async context manager / iterator standing in for a websocket connection."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.send = AsyncMock()
        self.close = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.frames:
            raise StopAsyncIteration
        return self.frames.pop(0)


def refusing_connect(calls):
    def connect(uri):
        calls.append(uri)
        raise OSError("connection refused")
    return connect


class TestRealtimeListener:
    """Reconnect policy and frame handling."""

    def test_uri_carries_token(self):
        listener = RealtimeListener("ws://localhost:8000/api/v1/notifications/ws", "abc.def")
        assert listener.uri == "ws://localhost:8000/api/v1/notifications/ws?token=abc.def"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []
        sleep = AsyncMock()
        listener = RealtimeListener("ws://test/ws", "t", max_attempts=5, retry_delay=3, connect=refusing_connect(calls), sleep=sleep)

        assert await listener.run() is False
        assert len(calls) == 6
        assert sleep.await_count == 5
        sleep.assert_awaited_with(3)

    @pytest.mark.asyncio
    async def test_successful_connection_resets_attempts(self):
        attempts = []
        frames = [json.dumps({"event": "orderNotification", "data": {"tableNumber": 3}})]

        def connect(uri):
            attempts.append(uri)
            if len(attempts) == 3:
                return FakeConnection(frames)
            raise OSError("connection refused")

        listener = RealtimeListener("ws://test/ws", "t", max_attempts=2, connect=connect, sleep=AsyncMock())

        assert await listener.run() is False
        # two failures, a session closed by the server, then two more failures
        assert len(attempts) == 5
        assert len(listener.log) == 1

    @pytest.mark.asyncio
    async def test_stop_ends_run(self):
        log = NotificationLog()
        listener = RealtimeListener("ws://test/ws", "t", log=log, sleep=AsyncMock())

        class StoppingConnection(FakeConnection):
            async def __anext__(self):
                if not self.frames:
                    await listener.stop()
                    raise StopAsyncIteration
                return self.frames.pop(0)

        listener._connect = lambda uri: StoppingConnection(
            [json.dumps({"event": "tableUpdated", "data": {"tableNumber": 1}})]
        )

        assert await listener.run() is True
        assert log.notifications()[0].type == NotificationType.TABLE

    def test_handle_message_ingests_events(self):
        listener = RealtimeListener("ws://test/ws", "t")
        notification = listener.handle_message(json.dumps({"event": "readyNotification", "data": {"tableNumber": 4}}))
        assert notification.type == NotificationType.READY
        assert listener.log.unread_count == 1

    def test_handle_message_drops_malformed_frames(self):
        listener = RealtimeListener("ws://test/ws", "t")
        assert listener.handle_message("not json") is None
        assert listener.handle_message(json.dumps(["tableUpdated"])) is None
        assert listener.handle_message(json.dumps({"data": {}})) is None
        assert len(listener.log) == 0

    @pytest.mark.asyncio
    async def test_emit_while_disconnected(self):
        listener = RealtimeListener("ws://test/ws", "t")
        assert await listener.emit("orderReady", {"orderId": 1}) is False
