from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from utils.database import Base, enum_column
from datetime import datetime
import enum

class OrderStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"

class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CREDIT = "credit"
    DEBIT = "debit"
    APP = "app"

class OrderItemStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# Allowed transitions; terminal states map to an empty list
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.ACTIVE: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],
    OrderStatus.CANCELLED: [],
}

PAYMENT_STATUS_TRANSITIONS = {
    PaymentStatus.PENDING: [PaymentStatus.PAID, PaymentStatus.REFUNDED],
    PaymentStatus.PAID: [PaymentStatus.REFUNDED],
    PaymentStatus.REFUNDED: [],
}

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    waiter_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(enum_column(OrderStatus, "orderstatus"), default=OrderStatus.ACTIVE, nullable=False)
    total_amount = Column(Float, default=0.0, nullable=False)
    payment_status = Column(enum_column(PaymentStatus, "paymentstatus"), default=PaymentStatus.PENDING, nullable=False)
    payment_method = Column(enum_column(PaymentMethod, "paymentmethod"), default=PaymentMethod.CASH, nullable=False)
    customer_count = Column(Integer, nullable=False)
    special_requests = Column(String, nullable=True)
    estimated_delivery_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    table = relationship("Table", back_populates="orders")
    waiter = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")

    def recalculate_total(self) -> float:
        """Recompute total_amount from the price snapshot and quantity of every item."""
        self.total_amount = round(sum(item.price * item.quantity for item in self.items), 2)
        return self.total_amount

    @property
    def table_number(self):
        return self.table.table_number if self.table else None

    @property
    def waiter_name(self):
        return self.waiter.name if self.waiter else None

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    special_instructions = Column(String, nullable=True)
    status = Column(enum_column(OrderItemStatus, "orderitemstatus"), default=OrderItemStatus.PENDING, nullable=False)
    price = Column(Float, nullable=False)  # menu price at the time the order was taken

    # Relationships
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")

    @property
    def menu_item_name(self):
        return self.menu_item.name if self.menu_item else None
