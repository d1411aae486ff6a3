"""
Client-side notification log fed by the realtime channel.

Notifications live in memory only. The log keeps counts per type and per
read state up to date on every mutation, so unread badges and filter tabs
never rescan the list.
"""
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from routes.notifications import (
    TABLE_UPDATED,
    TABLE_STATUS_CHANGED,
    ORDER_NOTIFICATION,
    READY_NOTIFICATION,
    PAYMENT_REQUEST_NOTIFICATION,
)

logger = logging.getLogger(__name__)


class NotificationType(str, enum.Enum):
    TABLE = "table"
    ORDER = "order"
    READY = "ready"
    PAYMENT = "payment"


class NotificationPriority(str, enum.Enum):
    NORMAL = "normal"
    HIGH = "high"


# Filter tabs; "order" groups new orders and ready orders
FILTER_KINDS = {
    "table": (NotificationType.TABLE,),
    "order": (NotificationType.ORDER, NotificationType.READY),
    "payment": (NotificationType.PAYMENT,),
}

MAX_TOASTS = 3
TOAST_BASE_SECONDS = 6.0
TOAST_STAGGER_SECONDS = 1.0


def _table_message(data: dict) -> str:
    return f"Table {data.get('tableNumber', '?')} is now {data.get('status', 'updated')}"


# Outbound event -> (type, priority, message builder)
EVENT_KINDS: Dict[str, tuple] = {
    TABLE_UPDATED: (NotificationType.TABLE, NotificationPriority.NORMAL, _table_message),
    TABLE_STATUS_CHANGED: (NotificationType.TABLE, NotificationPriority.NORMAL, _table_message),
    ORDER_NOTIFICATION: (
        NotificationType.ORDER,
        NotificationPriority.NORMAL,
        lambda data: f"New order for table {data.get('tableNumber', '?')}",
    ),
    READY_NOTIFICATION: (
        NotificationType.READY,
        NotificationPriority.HIGH,
        lambda data: f"Order ready for table {data.get('tableNumber', '?')}",
    ),
    PAYMENT_REQUEST_NOTIFICATION: (
        NotificationType.PAYMENT,
        NotificationPriority.HIGH,
        lambda data: f"Table {data.get('tableNumber', '?')} requested the bill",
    ),
}


@dataclass
class Notification:
    type: NotificationType
    message: str
    data: dict = field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.NORMAL
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.utcnow)
    read: bool = False


class NotificationLog:
    """Newest-first notification list with incrementally maintained counts."""

    def __init__(self):
        self._items: List[Notification] = []
        self._by_id: Dict[str, Notification] = {}
        self._counts: Dict[NotificationType, int] = {kind: 0 for kind in NotificationType}
        self._unread: Dict[NotificationType, int] = {kind: 0 for kind in NotificationType}

    def __len__(self) -> int:
        return len(self._items)

    def ingest(self, event: str, data: Optional[dict] = None) -> Optional[Notification]:
        """Wrap a realtime event into a notification. Unknown events are ignored."""
        kind = EVENT_KINDS.get(event)
        if kind is None:
            logger.debug(f"Ignoring realtime event {event!r}")
            return None
        notification_type, priority, build_message = kind
        data = data or {}
        return self.add(Notification(
            type=notification_type,
            message=build_message(data),
            data=data,
            priority=priority,
        ))

    def add(self, notification: Notification) -> Notification:
        if notification.id in self._by_id:
            raise ValueError(f"Notification {notification.id} already exists")
        self._items.insert(0, notification)
        self._by_id[notification.id] = notification
        self._counts[notification.type] += 1
        if not notification.read:
            self._unread[notification.type] += 1
        return notification

    def get(self, notification_id: str) -> Optional[Notification]:
        return self._by_id.get(notification_id)

    def mark_as_read(self, notification_id: str) -> bool:
        notification = self._by_id.get(notification_id)
        if notification is None:
            return False
        if not notification.read:
            notification.read = True
            self._unread[notification.type] -= 1
        return True

    def mark_all_as_read(self) -> int:
        marked = 0
        for notification in self._items:
            if not notification.read:
                notification.read = True
                marked += 1
        self._unread = {kind: 0 for kind in NotificationType}
        return marked

    def delete(self, notification_id: str) -> bool:
        notification = self._by_id.pop(notification_id, None)
        if notification is None:
            return False
        self._items.remove(notification)
        self._counts[notification.type] -= 1
        if not notification.read:
            self._unread[notification.type] -= 1
        return True

    def clear_all(self):
        self._items.clear()
        self._by_id.clear()
        self._counts = {kind: 0 for kind in NotificationType}
        self._unread = {kind: 0 for kind in NotificationType}

    def notifications(self, kind: Optional[str] = None, read: Optional[bool] = None) -> List[Notification]:
        types = _resolve_kind(kind)
        return [
            n for n in self._items
            if (types is None or n.type in types) and (read is None or n.read == read)
        ]

    @property
    def unread_count(self) -> int:
        return sum(self._unread.values())

    def count(self, kind: Optional[str] = None) -> int:
        types = _resolve_kind(kind)
        if types is None:
            return len(self._items)
        return sum(self._counts[t] for t in types)

    def unread_count_for(self, kind: str) -> int:
        return sum(self._unread[t] for t in _resolve_kind(kind))


def _resolve_kind(kind: Optional[str]):
    if kind is None:
        return None
    if kind not in FILTER_KINDS:
        raise ValueError(f"Unknown notification filter {kind!r}, expected one of {sorted(FILTER_KINDS)}")
    return FILTER_KINDS[kind]


@dataclass
class Toast:
    notification: Notification
    expires_at: float


class ToastQueue:
    """
    Surfaces unread high-priority notifications as auto-dismissing toasts.

    At most ``MAX_TOASTS`` are visible; the toast in slot ``i`` stays up for
    6 s + i s. A notification is toasted at most once.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._active: List[Toast] = []
        self._shown: set = set()

    @property
    def active(self) -> List[Notification]:
        return [toast.notification for toast in self._active]

    def sync(self, log: NotificationLog) -> List[Notification]:
        """Fill free slots from the log, oldest pending first. Returns the newly shown notifications."""
        self.expire()
        pending = [
            n for n in reversed(log.notifications(read=False))
            if n.priority == NotificationPriority.HIGH and n.id not in self._shown
        ]
        shown = []
        now = self._clock()
        for notification in pending[:MAX_TOASTS - len(self._active)]:
            slot = len(self._active)
            self._active.append(Toast(notification, now + TOAST_BASE_SECONDS + slot * TOAST_STAGGER_SECONDS))
            self._shown.add(notification.id)
            shown.append(notification)
        return shown

    def dismiss(self, notification_id: str) -> bool:
        for toast in self._active:
            if toast.notification.id == notification_id:
                self._active.remove(toast)
                return True
        return False

    def expire(self) -> List[Notification]:
        now = self._clock()
        expired = [toast for toast in self._active if toast.expires_at <= now]
        self._active = [toast for toast in self._active if toast.expires_at > now]
        return [toast.notification for toast in expired]
