from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from utils.database import get_db
from models.table_management import Table, TableStatus, JoinRole
from models.order_management import Order
from models.user import User, UserRole
from schemas.table_management import (
    TableCreate,
    TableUpdate,
    TableResponse,
    TableStatusUpdate,
    TableJoinRequest,
    TableJoinResponse,
    TableUnjoinResponse,
    TableWaitersUpdate,
    TablePositionsUpdate,
    SplitBillUpdate,
    SplitMethod,
)
from utils.auth import get_current_active_user, get_current_super_admin
from utils.table_joins import join_tables, unjoin_table, set_table_status
from utils.validators import validate_field_uniqueness
from routes.notifications import notify_table_updated, notify_table_status_changed, notify_payment_requested
import logging


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/tables", tags=["tables"])


def get_table_or_404(db: Session, table_id: int) -> Table:
    table = db.query(Table).filter(Table.id == table_id).first()
    if not table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    return table


@router.get("", response_model=List[TableResponse])
async def list_tables(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    tables = db.query(Table).order_by(Table.table_number).all()
    logger.info(f"Retrieved {len(tables)} tables for user {current_user.id}")
    return tables

@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
async def create_table(
    table: TableCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        validate_field_uniqueness(db, Table, "table_number", table.table_number, label="number")
        db_table = Table(
            table_number=table.table_number,
            capacity=table.capacity,
            position_x=table.position.x,
            position_y=table.position.y,
            section=table.section,
        )
        db.add(db_table)
        db.commit()
        db.refresh(db_table)
        logger.info(f"Table {db_table.table_number} created by user {current_user.id}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create table: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create table")

    await notify_table_updated([db_table])
    return db_table

@router.post("/join", response_model=TableJoinResponse)
async def join(
    request: TableJoinRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        main, members, released = join_tables(db, request.table_ids)
        db.commit()
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Join of tables {request.table_ids} rejected for user {current_user.id}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to join tables {request.table_ids}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to join tables")

    db.refresh(main)
    logger.info(
        f"Table {main.table_number} joined with tables {[m.table_number for m in members]} "
        f"(capacity {main.capacity}) by user {current_user.id}"
    )
    await notify_table_updated([main] + members + released)
    return {"main_table": main, "joined_tables": members}

@router.post("/unjoin/{table_id}", response_model=TableUnjoinResponse)
async def unjoin(
    table_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        main, released = unjoin_table(db, table_id)
        db.commit()
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Unjoin of table {table_id} rejected for user {current_user.id}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to unjoin table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to unjoin tables")

    db.refresh(main)
    logger.info(f"Table {main.table_number} unjoined from {[t.table_number for t in released]} by user {current_user.id}")
    await notify_table_updated([main] + released)
    return {"main_table": main, "released_tables": released}

@router.post("/update-positions", response_model=List[TableResponse])
async def update_positions(
    update: TablePositionsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        updated = []
        for entry in update.tables:
            db_table = get_table_or_404(db, entry.id)
            db_table.position_x = entry.position.x
            db_table.position_y = entry.position.y
            updated.append(db_table)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update table positions: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update table positions")

    logger.info(f"Positions of {len(updated)} tables updated by user {current_user.id}")
    await notify_table_updated(updated)
    return updated

@router.get("/section/{section}", response_model=List[TableResponse])
async def list_tables_by_section(
    section: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(Table).filter(Table.section == section).order_by(Table.table_number).all()

@router.get("/status/{table_status}", response_model=List[TableResponse])
async def list_tables_by_status(
    table_status: TableStatus,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return db.query(Table).filter(Table.status == table_status).order_by(Table.table_number).all()

@router.get("/{table_id}", response_model=TableResponse)
async def get_table(
    table_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return get_table_or_404(db, table_id)

@router.put("/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: int,
    table_update: TableUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    affected = []
    try:
        db_table = get_table_or_404(db, table_id)
        fields = table_update.dict(exclude_unset=True)

        if fields.get("table_number") is not None:
            validate_field_uniqueness(db, Table, "table_number", fields["table_number"], exclude_id=table_id, label="number")
            db_table.table_number = fields["table_number"]
        if fields.get("capacity") is not None:
            db_table.capacity = fields["capacity"]
        if fields.get("section") is not None and fields["section"] != db_table.section:
            if db_table.join_role != JoinRole.STANDALONE:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Unjoin the table before moving it to another section"
                )
            db_table.section = fields["section"]
        if table_update.position is not None:
            db_table.position_x = table_update.position.x
            db_table.position_y = table_update.position.y
        if table_update.status is not None and table_update.status != db_table.status:
            affected = set_table_status(db_table, table_update.status)

        db.commit()
        db.refresh(db_table)
        logger.info(f"Table {table_id} updated by user {current_user.id}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update table")

    await notify_table_updated([db_table])
    if affected:
        await notify_table_status_changed(affected)
    return db_table

@router.put("/{table_id}/status", response_model=TableResponse)
async def update_table_status(
    table_id: int,
    status_update: TableStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        db_table = get_table_or_404(db, table_id)
        affected = set_table_status(db_table, status_update.status)
        db.commit()
        db.refresh(db_table)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update status of table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update table status")

    logger.info(
        f"Table {db_table.table_number} set to {status_update.status.value} by user {current_user.id} "
        f"({len(affected)} tables affected)"
    )
    await notify_table_status_changed(affected)
    return db_table

@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(
    table_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    db_table = get_table_or_404(db, table_id)
    if db_table.current_order_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a table with an active order"
        )
    if db_table.join_role != JoinRole.STANDALONE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a joined table, unjoin it first"
        )
    if db.query(Order).filter(Order.table_id == table_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a table with order history"
        )

    try:
        db.delete(db_table)
        db.commit()
        logger.info(f"Table {table_id} deleted by user {current_user.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete table")

@router.post("/{table_id}/waiters", response_model=TableResponse)
async def assign_waiters(
    table_id: int,
    update: TableWaitersUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    db_table = get_table_or_404(db, table_id)
    waiter_ids = list(dict.fromkeys(update.waiter_ids))
    waiters = db.query(User).filter(User.id.in_(waiter_ids)).all() if waiter_ids else []
    valid = {w.id for w in waiters if w.role == UserRole.WAITER and w.is_active}
    invalid = [waiter_id for waiter_id in waiter_ids if waiter_id not in valid]
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Not active waiters: {', '.join(str(i) for i in invalid)}"
        )

    try:
        db_table.assigned_waiters = sorted(waiters, key=lambda w: waiter_ids.index(w.id))
        db.commit()
        db.refresh(db_table)
        logger.info(f"Waiters {waiter_ids} assigned to table {db_table.table_number} by user {current_user.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to assign waiters to table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to assign waiters")

    await notify_table_updated([db_table])
    return db_table

@router.post("/{table_id}/split", response_model=TableResponse)
async def split_bill(
    table_id: int,
    split: SplitBillUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    db_table = get_table_or_404(db, table_id).serving_table
    order = db.query(Order).filter(Order.id == db_table.current_order_id).first() if db_table.current_order_id else None

    if split.enabled and not order:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Table has no active order to split")

    divisions = [division.dict() for division in split.divisions]
    if split.enabled and split.method == SplitMethod.EQUAL and divisions:
        share = round(order.total_amount / len(divisions), 2)
        for division in divisions:
            division["amount"] = share
    elif split.enabled and split.method == SplitMethod.BY_ITEM:
        prices = {item.id: item.price * item.quantity for item in order.items}
        for division in divisions:
            unknown = [item_id for item_id in division["items"] if item_id not in prices]
            if unknown:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Order items not found: {', '.join(str(i) for i in unknown)}"
                )
            division["amount"] = round(sum(prices[item_id] for item_id in division["items"]), 2)

    try:
        db_table.split_bills = {"enabled": split.enabled, "method": split.method.value, "divisions": divisions}
        db.commit()
        db.refresh(db_table)
        logger.info(f"Bill split ({split.method.value}, {len(divisions)} divisions) for table {db_table.table_number} by user {current_user.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to split bill for table {table_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to split bill")

    await notify_table_updated([db_table])
    return db_table

@router.post("/{table_id}/request-payment")
async def request_payment(
    table_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    db_table = get_table_or_404(db, table_id).serving_table
    order = db.query(Order).filter(Order.id == db_table.current_order_id).first() if db_table.current_order_id else None
    if not order:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Table has no active order")

    logger.info(f"Payment requested for table {db_table.table_number} (order {order.id}) by user {current_user.id}")
    await notify_payment_requested(db_table, order)
    return {"detail": "Payment requested", "order_id": order.id, "total_amount": order.total_amount}
