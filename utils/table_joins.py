"""
Joining physical tables into one serving unit and keeping their status in sync.

A join has one main table, which carries the combined capacity and holds the
orders, and one or more member tables pointing at it through
``parent_table_id``. None of the helpers here commit: the caller commits once
so a join, an unjoin or a status propagation lands as a single transaction.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from models.table_management import Table, TableStatus, JoinRole

logger = logging.getLogger(__name__)

# Capacity given back to a main table that has no recorded original capacity
FALLBACK_CAPACITY = 2


def get_join_main(table: Table) -> Table:
    """Main table of the join ``table`` belongs to (itself when main or standalone)."""
    if table.join_role == JoinRole.MEMBER and table.parent_table is not None:
        return table.parent_table
    return table


def get_linked_tables(table: Table) -> List[Table]:
    """Every other table sharing a join with ``table``."""
    if table.join_role == JoinRole.MAIN:
        return list(table.members)
    if table.join_role == JoinRole.MEMBER and table.parent_table is not None:
        main = table.parent_table
        return [main] + [member for member in main.members if member.id != table.id]
    return []


def _apply_status(table: Table, new_status: TableStatus, now: datetime) -> None:
    if new_status == TableStatus.OCCUPIED:
        if table.status != TableStatus.OCCUPIED or table.occupied_at is None:
            table.occupied_at = now
    else:
        table.occupied_at = None
    if new_status == TableStatus.AVAILABLE:
        table.current_order_id = None
    table.status = new_status


def set_table_status(table: Table, new_status: TableStatus) -> List[Table]:
    """
    Move ``table`` and every table joined to it to ``new_status``.

    All linked tables share the same ``occupied_at`` stamp. Returns the
    affected tables, source first.
    """
    now = datetime.utcnow()
    affected = [table] + get_linked_tables(table)
    for linked in affected:
        _apply_status(linked, new_status, now)
    if len(affected) > 1:
        logger.debug(
            f"Propagated status {new_status.value} from table {table.table_number} "
            f"to tables {[t.table_number for t in affected[1:]]}"
        )
    return affected


def _dissolve(main: Table) -> List[Table]:
    """Turn a main table and all its members back into standalone tables."""
    released = list(main.members)
    for member in released:
        member.join_role = JoinRole.STANDALONE
        member.parent_table = None
        member.join_position = None
    main.capacity = main.original_capacity or FALLBACK_CAPACITY
    main.original_capacity = None
    main.join_role = JoinRole.STANDALONE
    return released


def join_tables(db: Session, table_ids: Iterable[int]) -> Tuple[Table, List[Table], List[Table]]:
    """
    Join the given tables; the first id becomes the main table.

    Candidates already in a join have that whole join dissolved first, so a
    new join silently replaces an older one. Returns ``(main, members, released)``
    where ``released`` are the tables of dissolved joins left standalone.
    """
    ids = list(dict.fromkeys(table_ids))
    if len(ids) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least two different tables are required to join"
        )

    found = {table.id: table for table in db.query(Table).filter(Table.id.in_(ids)).all()}
    missing = [table_id for table_id in ids if table_id not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tables not found: {', '.join(str(table_id) for table_id in missing)}"
        )
    tables = [found[table_id] for table_id in ids]

    unavailable = [table.table_number for table in tables if table.status != TableStatus.AVAILABLE]
    if unavailable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only available tables can be joined. Unavailable tables: {', '.join(str(n) for n in unavailable)}"
        )

    sections = {table.section for table in tables}
    if len(sections) > 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Tables must be in the same section to be joined, got: {', '.join(sorted(sections))}"
        )

    previous_mains = []
    for table in tables:
        if table.join_role != JoinRole.STANDALONE:
            main = get_join_main(table)
            if main not in previous_mains:
                previous_mains.append(main)
    released = []
    for previous in previous_mains:
        dissolved = _dissolve(previous)
        logger.info(
            f"Dissolved previous join of table {previous.table_number} "
            f"with tables {[t.table_number for t in dissolved]}"
        )
        released.extend(t for t in [previous] + dissolved if t not in tables and t not in released)

    main, members = tables[0], tables[1:]
    main.original_capacity = main.capacity
    main.capacity = sum(table.capacity for table in tables)
    main.join_role = JoinRole.MAIN
    for position, member in enumerate(members):
        member.join_role = JoinRole.MEMBER
        member.parent_table = main
        member.join_position = position

    db.flush()
    return main, members, released


def unjoin_table(db: Session, table_id: int) -> Tuple[Table, List[Table]]:
    """Split a joined main table back into standalone tables. Returns ``(main, released)``."""
    table = db.query(Table).filter(Table.id == table_id).first()
    if not table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    if table.join_role != JoinRole.MAIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Table is not joined with other tables")
    if table.status != TableStatus.AVAILABLE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only available tables can be unjoined"
        )

    released = _dissolve(table)
    db.flush()
    return table, released
