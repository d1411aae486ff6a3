import json
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from fastapi import WebSocket, WebSocketDisconnect, APIRouter, status
from utils.auth import get_user_from_token
from utils.database import SessionLocal
from models.user import UserRole

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])

# Outbound event names
TABLE_UPDATED = "tableUpdated"
TABLE_STATUS_CHANGED = "tableStatusChanged"
ORDER_NOTIFICATION = "orderNotification"
READY_NOTIFICATION = "readyNotification"
PAYMENT_REQUEST_NOTIFICATION = "paymentRequestNotification"

ALL_ROLES = (UserRole.SUPERADMIN.value, UserRole.WAITER.value)
WAITERS_ONLY = (UserRole.WAITER.value,)

# Inbound event -> (outbound event, broadcast groups)
EVENT_ROUTES = {
    "updateTable": (TABLE_UPDATED, ALL_ROLES),
    "tableStatusChange": (TABLE_STATUS_CHANGED, ALL_ROLES),
    "newOrder": (ORDER_NOTIFICATION, ALL_ROLES),
    "orderReady": (READY_NOTIFICATION, WAITERS_ONLY),
    "requestPayment": (PAYMENT_REQUEST_NOTIFICATION, ALL_ROLES),
}

# Outbound event -> broadcast groups, for events published by the REST handlers
OUTBOUND_GROUPS = {outbound: groups for outbound, groups in EVENT_ROUTES.values()}


class ConnectionManager:
    """
    Role-scoped broadcast groups. Each connection belongs to exactly one group.

    Delivery is at-most-once: nothing is buffered for disconnected clients and
    a connection whose send fails is dropped.
    """

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {role: set() for role in ALL_ROLES}

    async def connect(self, websocket: WebSocket, role: str):
        await websocket.accept()
        self.active_connections.setdefault(role, set()).add(websocket)
        logger.debug(f"WebSocket joined group {role}. Connections in group: {len(self.active_connections[role])}")

    def disconnect(self, websocket: WebSocket, role: str):
        self.active_connections.get(role, set()).discard(websocket)
        logger.debug(f"WebSocket left group {role}. Connections in group: {len(self.active_connections.get(role, set()))}")

    def connection_count(self, role: Optional[str] = None) -> int:
        if role is not None:
            return len(self.active_connections.get(role, set()))
        return sum(len(group) for group in self.active_connections.values())

    async def broadcast_to_role(self, role: str, message: dict) -> int:
        delivered = 0
        for connection in list(self.active_connections.get(role, set())):
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send WebSocket message to group {role}, dropping connection: {str(e)}")
                self.disconnect(connection, role)
        return delivered

    async def broadcast(self, event: str, data: dict, roles: Iterable[str]) -> int:
        message = {"event": event, "data": data}
        delivered = 0
        for role in roles:
            delivered += await self.broadcast_to_role(role, message)
        return delivered

    async def relay(self, inbound_event: str, data: dict) -> bool:
        """Relay a client-produced event verbatim to the groups routed for it."""
        route = EVENT_ROUTES.get(inbound_event)
        if route is None:
            logger.debug(f"Ignoring unknown realtime event {inbound_event!r}")
            return False
        outbound_event, roles = route
        await self.broadcast(outbound_event, data, roles)
        return True

connection_manager = ConnectionManager()


async def publish(event: str, data: dict):
    """Publish a server-side event; failures are logged and never reach the caller."""
    try:
        await connection_manager.broadcast(event, data, OUTBOUND_GROUPS[event])
    except Exception as e:
        logger.warning(f"Failed to broadcast {event}: {str(e)}")

def table_payload(table) -> dict:
    return {"tableId": table.id, "tableNumber": table.table_number, "status": table.status.value}

async def notify_table_updated(tables: List):
    for table in tables:
        await publish(TABLE_UPDATED, table_payload(table))

async def notify_table_status_changed(tables: List):
    for table in tables:
        await publish(TABLE_STATUS_CHANGED, table_payload(table))

async def notify_new_order(order):
    await publish(ORDER_NOTIFICATION, {
        "orderId": order.id,
        "tableId": order.table_id,
        "tableNumber": order.table_number,
        "timestamp": datetime.utcnow().isoformat(),
    })

async def notify_order_ready(order):
    await publish(READY_NOTIFICATION, {
        "orderId": order.id,
        "tableId": order.table_id,
        "tableNumber": order.table_number,
        "timestamp": datetime.utcnow().isoformat(),
    })

async def notify_payment_requested(table, order):
    await publish(PAYMENT_REQUEST_NOTIFICATION, {
        "tableId": table.id,
        "tableNumber": table.table_number,
        "orderId": order.id,
        "totalAmount": order.total_amount,
        "timestamp": datetime.utcnow().isoformat(),
    })


@router.websocket("/ws")
async def websocket_notifications(websocket: WebSocket):
    token = websocket.query_params.get("token")
    user = None
    if token:
        # Resolve the user and give the connection back before the socket is held open
        db = SessionLocal()
        try:
            user = get_user_from_token(token, db)
        finally:
            db.close()
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    role = user.role.value
    await connection_manager.connect(websocket, role)
    logger.info(f"User {user.id} connected to realtime group {role}")
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(message, dict) or not isinstance(message.get("event"), str):
                continue
            data = message.get("data")
            await connection_manager.relay(message["event"], data if isinstance(data, dict) else {})
    except WebSocketDisconnect:
        connection_manager.disconnect(websocket, role)
        logger.info(f"User {user.id} disconnected from realtime group {role}")
    except Exception as e:
        logger.error(f"WebSocket error for user {user.id}: {str(e)}")
        connection_manager.disconnect(websocket, role)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
