"""
Tests for the realtime notification server.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.websockets import WebSocketDisconnect

from routes.notifications import (
    ConnectionManager,
    PAYMENT_REQUEST_NOTIFICATION,
    READY_NOTIFICATION,
    TABLE_STATUS_CHANGED,
    connection_manager,
)
from models.user import UserRole
from utils.auth import create_access_token
from utils.database import Base

from tests.conftest import make_user


def fake_socket():
    websocket = MagicMock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    return websocket


class TestConnectionManager:
    """Role-scoped broadcast groups."""

    @pytest.mark.asyncio
    async def test_connect_joins_role_group(self):
        manager = ConnectionManager()
        websocket = fake_socket()

        await manager.connect(websocket, "waiter")

        websocket.accept.assert_awaited_once()
        assert manager.connection_count("waiter") == 1
        assert manager.connection_count("superadmin") == 0

    @pytest.mark.asyncio
    async def test_order_ready_reaches_waiters_only(self):
        manager = ConnectionManager()
        waiter_socket, admin_socket = fake_socket(), fake_socket()
        await manager.connect(waiter_socket, "waiter")
        await manager.connect(admin_socket, "superadmin")

        relayed = await manager.relay("orderReady", {"orderId": 1, "tableNumber": 4})

        assert relayed is True
        waiter_socket.send_json.assert_awaited_once_with(
            {"event": READY_NOTIFICATION, "data": {"orderId": 1, "tableNumber": 4}}
        )
        admin_socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_payment_request_reaches_both_roles(self):
        manager = ConnectionManager()
        waiter_socket, admin_socket = fake_socket(), fake_socket()
        await manager.connect(waiter_socket, "waiter")
        await manager.connect(admin_socket, "superadmin")

        await manager.relay("requestPayment", {"tableId": 1})

        for websocket in (waiter_socket, admin_socket):
            websocket.send_json.assert_awaited_once_with({"event": PAYMENT_REQUEST_NOTIFICATION, "data": {"tableId": 1}})

    @pytest.mark.asyncio
    async def test_unknown_event_is_ignored(self):
        manager = ConnectionManager()
        websocket = fake_socket()
        await manager.connect(websocket, "waiter")

        assert await manager.relay("dropTables", {}) is False
        websocket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_send_drops_connection(self):
        manager = ConnectionManager()
        broken, healthy = fake_socket(), fake_socket()
        broken.send_json.side_effect = RuntimeError("socket closed")
        await manager.connect(broken, "waiter")
        await manager.connect(healthy, "waiter")

        delivered = await manager.broadcast(TABLE_STATUS_CHANGED, {"tableId": 1}, ["waiter"])

        assert delivered == 1
        assert manager.connection_count("waiter") == 1

    @pytest.mark.asyncio
    async def test_disconnect(self):
        manager = ConnectionManager()
        websocket = fake_socket()
        await manager.connect(websocket, "superadmin")
        manager.disconnect(websocket, "superadmin")
        manager.disconnect(websocket, "superadmin")
        assert manager.connection_count() == 0


class TestWebsocketEndpoint:
    """The /api/v1/notifications/ws endpoint."""

    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/api/v1/notifications/ws") as websocket:
                websocket.receive_json()
        assert exc.value.code == 1008

    def test_rejects_inactive_user(self, client, db_session, waiter):
        waiter.is_active = False
        db_session.commit()
        token = create_access_token({"sub": str(waiter.id)})
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/api/v1/notifications/ws?token={token}") as websocket:
                websocket.receive_json()
        assert exc.value.code == 1008

    def test_relays_client_event_to_group(self, client, waiter):
        token = create_access_token({"sub": str(waiter.id)})
        with client.websocket_connect(f"/api/v1/notifications/ws?token={token}") as websocket:
            websocket.send_text("not json")
            websocket.send_json({"event": "orderReady", "data": {"orderId": 9, "tableNumber": 2}})
            message = websocket.receive_json()

        assert message == {"event": READY_NOTIFICATION, "data": {"orderId": 9, "tableNumber": 2}}
        assert connection_manager.connection_count("waiter") == 0

    def test_rest_mutation_publishes_event(self, client, waiter, waiter_headers, make_table):
        table = make_table(table_number=5)
        token = create_access_token({"sub": str(waiter.id)})
        with client.websocket_connect(f"/api/v1/notifications/ws?token={token}") as websocket:
            response = client.put(f"/api/v1/tables/{table.id}/status", json={"status": "occupied"}, headers=waiter_headers)
            assert response.status_code == 200
            message = websocket.receive_json()

        assert message == {
            "event": TABLE_STATUS_CHANGED,
            "data": {"tableId": table.id, "tableNumber": 5, "status": "occupied"},
        }

    @pytest.mark.asyncio
    async def test_publish_failure_never_raises(self):
        with patch.object(connection_manager, "broadcast", AsyncMock(side_effect=RuntimeError("boom"))):
            from routes.notifications import publish
            await publish(TABLE_STATUS_CHANGED, {"tableId": 1})

    def test_open_socket_holds_no_database_connection(self, client, monkeypatch, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'pool.db'}", connect_args={"check_same_thread": False})
        Base.metadata.create_all(bind=engine)
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        monkeypatch.setattr("routes.notifications.SessionLocal", session_factory)

        db = session_factory()
        try:
            user = make_user(db, "Pooled Waiter", "pooled@test.com", UserRole.WAITER)
            token = create_access_token({"sub": str(user.id)})
        finally:
            db.close()

        try:
            with client.websocket_connect(f"/api/v1/notifications/ws?token={token}") as websocket:
                websocket.send_json({"event": "orderReady", "data": {"orderId": 1}})
                websocket.receive_json()
                assert engine.pool.checkedout() == 0
        finally:
            engine.dispose()
