from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
import logging
from typing import List, Optional
from datetime import datetime, timedelta

from routes.notifications import notify_new_order, notify_order_ready, notify_table_status_changed
from utils.database import get_db
from utils.auth import get_current_active_user, get_current_super_admin
from utils.config import ORDER_ETA_MINUTES
from utils.pdf_generator import generate_receipt_pdf
from utils.table_joins import set_table_status
from models.menu_management import MenuItem
from models.order_management import (
    Order,
    OrderItem,
    OrderStatus,
    OrderItemStatus,
    ORDER_STATUS_TRANSITIONS,
    PAYMENT_STATUS_TRANSITIONS,
)
from models.table_management import Table, TableStatus
from models.user import User
from schemas.order_management import (
    OrderCreate,
    OrderUpdate,
    OrderResponse,
    OrderItemStatusUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def get_order_or_404(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


# Validate order and payment status transitions
def validate_status_transition(transitions: dict, current, new, label: str):
    if new == current:
        return
    if new not in transitions[current]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} transition from {current.value} to {new.value}"
        )


def release_table(db: Session, order: Order) -> List[Table]:
    """Free the order's table (and the tables joined to it) if this order is its current order."""
    table = order.table
    if table is None or table.current_order_id != order.id:
        return []
    return set_table_status(table, TableStatus.AVAILABLE)


def complete_order(db: Session, order: Order) -> List[Table]:
    """Close an order: free its table and fold the service time into the waiter's performance."""
    order.completed_at = datetime.utcnow()
    occupied_at = order.table.occupied_at if order.table else None
    released = release_table(db, order)

    if order.waiter:
        service_minutes = None
        if occupied_at:
            service_minutes = (order.completed_at - occupied_at).total_seconds() / 60
        order.waiter.record_service(service_minutes)
    return released


def all_items_ready(order: Order) -> bool:
    live = [item for item in order.items if item.status != OrderItemStatus.CANCELLED]
    return bool(live) and all(item.status == OrderItemStatus.READY for item in live)


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(Order).order_by(Order.created_at.desc()).all()

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        table = db.query(Table).filter(Table.id == order.table_id).first()
        if not table:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
        if table.status in (TableStatus.RESERVED, TableStatus.MAINTENANCE):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Table {table.table_number} is {table.status.value} and cannot take orders"
            )
        # Members of a join are served through their main table
        table = table.serving_table

        now = datetime.utcnow()
        db_order = Order(
            table_id=table.id,
            waiter_id=current_user.id,
            customer_count=order.customer_count,
            special_requests=order.special_requests,
            estimated_delivery_time=now + timedelta(minutes=ORDER_ETA_MINUTES),
            status=OrderStatus.ACTIVE,
        )

        for item in order.items:
            menu_item = db.query(MenuItem).filter(MenuItem.id == item.menu_item_id).first()
            if not menu_item:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Menu item {item.menu_item_id} not found"
                )
            if not menu_item.is_available:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Menu item '{menu_item.name}' is not available"
                )

            db_order.items.append(OrderItem(
                menu_item_id=menu_item.id,
                quantity=item.quantity,
                special_instructions=item.special_instructions,
                price=menu_item.price,
            ))
            menu_item.order_count = (menu_item.order_count or 0) + item.quantity

        db_order.recalculate_total()
        db.add(db_order)
        db.flush()

        affected = set_table_status(table, TableStatus.OCCUPIED)
        table.current_order_id = db_order.id
        if current_user not in table.assigned_waiters:
            table.assigned_waiters.append(current_user)

        db.commit()
        db.refresh(db_order)
        logger.info(f"Order {db_order.id} created by user {current_user.id} for table {table.table_number}")
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Validation error for order creation by user {current_user.id}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating order by user {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )

    await notify_table_status_changed(affected)
    await notify_new_order(db_order)
    return db_order

@router.get("/status/active", response_model=List[OrderResponse])
async def list_active_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(Order).filter(Order.status == OrderStatus.ACTIVE).order_by(Order.created_at).all()

@router.get("/table/{table_id}", response_model=List[OrderResponse])
async def list_table_orders(
    table_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(Order).filter(
        Order.table_id == table_id,
        Order.status != OrderStatus.CANCELLED
    ).order_by(Order.created_at).all()

@router.get("/waiter/{waiter_id}", response_model=List[OrderResponse])
async def list_waiter_orders(
    waiter_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    return db.query(Order).filter(Order.waiter_id == waiter_id).order_by(Order.created_at).all()

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return get_order_or_404(db, order_id)

@router.get("/{order_id}/receipt")
async def get_order_receipt(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    order = get_order_or_404(db, order_id)
    buffer = generate_receipt_pdf(order)
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename=receipt_order_{order.id}.pdf"},
    )

@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    update: OrderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    released: List[Table] = []
    became_ready = False
    try:
        order = get_order_or_404(db, order_id)
        previous_status = order.status

        if update.status is not None:
            validate_status_transition(ORDER_STATUS_TRANSITIONS, order.status, update.status, "order status")
        if update.payment_status is not None:
            validate_status_transition(PAYMENT_STATUS_TRANSITIONS, order.payment_status, update.payment_status, "payment status")

        if update.items:
            was_ready = all_items_ready(order)
            items_by_id = {item.id: item for item in order.items}
            for item_update in update.items:
                db_item = items_by_id.get(item_update.id)
                if db_item is None:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail=f"Order item {item_update.id} not found"
                    )
                if item_update.quantity is not None:
                    db_item.quantity = item_update.quantity
                if item_update.special_instructions is not None:
                    db_item.special_instructions = item_update.special_instructions
                if item_update.status is not None:
                    db_item.status = item_update.status
            order.recalculate_total()
            became_ready = not was_ready and all_items_ready(order)

        if update.payment_status is not None:
            order.payment_status = update.payment_status
        if update.payment_method is not None:
            order.payment_method = update.payment_method

        if update.status is not None and update.status != previous_status:
            order.status = update.status
            if update.status == OrderStatus.COMPLETED:
                released = complete_order(db, order)
            elif update.status == OrderStatus.CANCELLED:
                released = release_table(db, order)

        order.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(order)
        logger.info(f"Order {order_id} updated by user {current_user.id} (status {order.status.value}, payment {order.payment_status.value})")
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Order {order_id} update rejected for user {current_user.id}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update order")

    if released:
        await notify_table_status_changed(released)
    if became_ready:
        await notify_order_ready(order)
    return order

@router.put("/{order_id}/items/{item_id}", response_model=OrderResponse)
async def update_order_item_status(
    order_id: int,
    item_id: int,
    status_update: OrderItemStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        order = get_order_or_404(db, order_id)
        db_item = next((item for item in order.items if item.id == item_id), None)
        if db_item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order item not found")

        was_ready = all_items_ready(order)
        db_item.status = status_update.status
        became_ready = not was_ready and all_items_ready(order)
        order.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(order)
        logger.info(f"Item {item_id} of order {order_id} set to {status_update.status.value} by user {current_user.id}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating item {item_id} of order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update order item")

    if became_ready:
        await notify_order_ready(order)
    return order

@router.delete("/{order_id}")
async def cancel_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    released: List[Table] = []
    try:
        order = get_order_or_404(db, order_id)
        validate_status_transition(ORDER_STATUS_TRANSITIONS, order.status, OrderStatus.CANCELLED, "order status")
        if order.status != OrderStatus.CANCELLED:
            order.status = OrderStatus.CANCELLED
            order.updated_at = datetime.utcnow()
            released = release_table(db, order)
        db.commit()
        logger.info(f"Order {order_id} cancelled by user {current_user.id}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error cancelling order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel order")

    if released:
        await notify_table_status_changed(released)
    return {"detail": "Order cancelled"}

@router.delete("/{order_id}/payment")
async def delete_payment(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    """Administrative cleanup: permanently removes the order behind a payment record."""
    try:
        order = get_order_or_404(db, order_id)
        for table in db.query(Table).filter(Table.current_order_id == order.id).all():
            table.current_order_id = None
        db.delete(order)
        db.commit()
        logger.info(f"Order {order_id} permanently deleted by user {current_user.id}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting payment of order {order_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete payment")

    return {"detail": "Payment record deleted"}
