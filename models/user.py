from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from utils.database import Base, enum_column
import enum

class UserRole(str, enum.Enum):
    SUPERADMIN = "superadmin"  # Manages the floor, menu and staff
    WAITER = "waiter"          # Takes orders and serves tables

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(enum_column(UserRole, "userrole"), nullable=False, default=UserRole.WAITER)
    is_active = Column(Boolean, default=True)

    # Performance counters, maintained when orders are completed
    orders_served = Column(Integer, default=0, nullable=False)
    average_service_time = Column(Float, default=0.0, nullable=False)  # minutes
    customer_ratings = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    orders = relationship("Order", back_populates="waiter")
    assigned_tables = relationship("Table", secondary="table_waiters", back_populates="assigned_waiters")

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    def record_service(self, service_minutes=None):
        """Count one more served order and fold its service time into the running mean."""
        self.orders_served = (self.orders_served or 0) + 1
        if service_minutes is None:
            return
        previous_total = (self.average_service_time or 0.0) * (self.orders_served - 1)
        self.average_service_time = round((previous_total + service_minutes) / self.orders_served, 2)
