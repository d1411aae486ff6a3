from typing import List, Optional
from pydantic import BaseModel, Field, validator
from datetime import datetime
from models.order_management import OrderStatus, PaymentStatus, PaymentMethod, OrderItemStatus


class OrderItemCreate(BaseModel):
    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    special_instructions: Optional[str] = None

    @validator('quantity')
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError("Quantity must be positive")
        return v


class OrderCreate(BaseModel):
    table_id: int = Field(..., gt=0, description="Table the order is served at")
    items: List[OrderItemCreate] = Field(..., min_items=1, description="List of order items")
    customer_count: int = Field(..., ge=1)
    special_requests: Optional[str] = None


class OrderItemUpdate(BaseModel):
    id: int
    quantity: Optional[int] = Field(None, ge=1)
    special_instructions: Optional[str] = None
    status: Optional[OrderItemStatus] = None


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    items: Optional[List[OrderItemUpdate]] = None


class OrderItemStatusUpdate(BaseModel):
    status: OrderItemStatus


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    menu_item_name: Optional[str] = None
    quantity: int
    special_instructions: Optional[str] = None
    status: OrderItemStatus
    price: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    table_id: int
    table_number: Optional[int] = None
    waiter_id: int
    waiter_name: Optional[str] = None
    status: OrderStatus
    total_amount: float
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    customer_count: int
    special_requests: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True
