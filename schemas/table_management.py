from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum
from models.table_management import TableStatus, JoinRole

class Position(BaseModel):
    x: float
    y: float

class TableBase(BaseModel):
    table_number: int = Field(..., gt=0)
    capacity: int = Field(..., ge=1)
    position: Position
    section: str = "main"

class TableCreate(TableBase):
    pass

class TableUpdate(BaseModel):
    table_number: Optional[int] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, ge=1)
    position: Optional[Position] = None
    section: Optional[str] = None
    status: Optional[TableStatus] = None

class TableStatusUpdate(BaseModel):
    status: TableStatus

class TableJoinRequest(BaseModel):
    table_ids: List[int] = Field(..., min_items=2, description="Tables to join; the first one becomes the main table")

class TableWaitersUpdate(BaseModel):
    waiter_ids: List[int]

class TablePositionUpdate(BaseModel):
    id: int
    position: Position

class TablePositionsUpdate(BaseModel):
    tables: List[TablePositionUpdate] = Field(..., min_items=1)

class SplitMethod(str, Enum):
    EQUAL = "equal"
    CUSTOM = "custom"
    BY_ITEM = "by_item"

class BillDivision(BaseModel):
    name: str
    waiter_id: Optional[int] = None
    items: List[int] = []
    amount: Optional[float] = Field(None, ge=0)

class SplitBillUpdate(BaseModel):
    enabled: bool
    method: SplitMethod = SplitMethod.EQUAL
    divisions: List[BillDivision] = []

class TableResponse(TableBase):
    id: int
    status: TableStatus
    original_capacity: Optional[int] = None
    join_role: JoinRole
    is_joined: bool
    joined_with: List[int]
    is_virtual: bool
    parent_table_id: Optional[int] = None
    assigned_waiter_ids: List[int]
    current_order_id: Optional[int] = None
    occupied_at: Optional[datetime] = None
    split_bills: Optional[dict] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TableJoinResponse(BaseModel):
    main_table: TableResponse
    joined_tables: List[TableResponse]

class TableUnjoinResponse(BaseModel):
    main_table: TableResponse
    released_tables: List[TableResponse]
