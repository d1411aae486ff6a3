from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Float, JSON, Table as AssociationTable
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from utils.database import Base, enum_column
import enum

class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"

class JoinRole(str, enum.Enum):
    STANDALONE = "standalone"  # Not part of any join
    MAIN = "main"              # Canonical table of a join, carries the combined capacity
    MEMBER = "member"          # Absorbed into the join of parent_table

table_waiters = AssociationTable(
    "table_waiters",
    Base.metadata,
    Column("table_id", Integer, ForeignKey("tables.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

class Table(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, unique=True, index=True, nullable=False)
    capacity = Column(Integer, nullable=False)
    original_capacity = Column(Integer, nullable=True)
    status = Column(enum_column(TableStatus, "tablestatus"), default=TableStatus.AVAILABLE, nullable=False)
    position_x = Column(Float, nullable=False, default=0)
    position_y = Column(Float, nullable=False, default=0)
    section = Column(String, nullable=False, default="main")

    join_role = Column(enum_column(JoinRole, "joinrole"), default=JoinRole.STANDALONE, nullable=False)
    parent_table_id = Column(Integer, ForeignKey("tables.id"), nullable=True)
    # Order of a member within its join, as given when the join was made
    join_position = Column(Integer, nullable=True)

    # Plain pointer: orders already reference tables, a second FK would make the schema cyclic
    current_order_id = Column(Integer, nullable=True)
    occupied_at = Column(DateTime, nullable=True)
    split_bills = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    parent_table = relationship("Table", remote_side=[id], back_populates="members")
    members = relationship("Table", back_populates="parent_table", order_by="Table.join_position")
    assigned_waiters = relationship("User", secondary=table_waiters, back_populates="assigned_tables")
    orders = relationship("Order", back_populates="table")

    @property
    def is_joined(self) -> bool:
        return self.join_role == JoinRole.MAIN

    @property
    def is_virtual(self) -> bool:
        return self.join_role == JoinRole.MEMBER

    @property
    def joined_with(self):
        if self.join_role != JoinRole.MAIN:
            return []
        return [member.id for member in self.members]

    @property
    def position(self) -> dict:
        return {"x": self.position_x, "y": self.position_y}

    @property
    def assigned_waiter_ids(self):
        return [waiter.id for waiter in self.assigned_waiters]

    @property
    def serving_table(self) -> "Table":
        """The table that holds orders for this one: its main table when joined as a member."""
        if self.join_role == JoinRole.MEMBER and self.parent_table is not None:
            return self.parent_table
        return self
