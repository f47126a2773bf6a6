"""
Archive Service

Before/after snapshots of mutated inventory, reservation and ledger rows.
Writes join the caller's transaction; nothing here commits except cleanup.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, desc, and_, func

from partstock.core.exceptions import RecordNotFound
from partstock.db.enums import ArchiveEntityType
from partstock.db.models import Archive, Inventory, Reservation

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def inventory_snapshot(item: Inventory) -> dict:
    """JSON-safe copy of an inventory row."""
    return {
        "id": item.id,
        "item_id": item.item_id,
        "item_name": item.item_name,
        "description": item.description,
        "category": item.category,
        "stock": item.stock,
        "reorder_level": item.reorder_level,
        "unit_price": float(item.unit_price or 0),
        "supplier": item.supplier,
        "location": item.location,
        "status": item.status,
        "version": item.version,
        "updated_at": _iso(item.updated_at),
    }


def reservation_snapshot(reservation: Reservation) -> dict:
    """JSON-safe copy of a reservation row."""
    return {
        "id": reservation.id,
        "item_id": reservation.item_id,
        "quantity": reservation.quantity,
        "status": reservation.status,
        "priority_level": reservation.priority_level,
        "is_urgent": reservation.is_urgent,
        "job_order_number": reservation.job_order_number,
        "requested_by": reservation.requested_by,
        "approved_by": reservation.approved_by,
        "approved_date": _iso(reservation.approved_date),
        "expires_at": _iso(reservation.expires_at),
        "notes": reservation.notes,
    }


def record_archive(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
    action: str,
    old_data: Optional[dict] = None,
    new_data: Optional[dict] = None,
    actor: Optional[str] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    archived_date: Optional[datetime] = None,
) -> Archive:
    """
    Stage an archive row in the current session.

    Args:
        db: Database session (the caller commits)
        entity_type: inventory, reservation or transaction
        entity_id: Surrogate id of the archived row
        action: What happened (created, updated, sale, approved, ...)
        old_data: Snapshot before the change
        new_data: Snapshot after the change
        actor: Staff member name
        reference_number: Receipt or job order, when there is one
        notes: Free-text description

    Returns:
        The pending Archive row
    """
    entry = Archive(
        entity_type=ArchiveEntityType(entity_type).value,
        entity_id=entity_id,
        action=action,
        old_data=old_data,
        new_data=new_data,
        user_id=actor,
        reference_number=reference_number,
        notes=notes,
        archived_date=archived_date or datetime.utcnow(),
    )
    db.add(entry)
    return entry


async def list_archives(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[Archive], int]:
    """
    Query archives with optional filters, newest first. `end_date` is exclusive.

    Returns:
        Tuple of (list of archives, total count)
    """
    conditions = []

    if entity_type:
        conditions.append(Archive.entity_type == entity_type)
    if entity_id is not None:
        conditions.append(Archive.entity_id == entity_id)
    if action:
        conditions.append(Archive.action == action)
    if start_date:
        conditions.append(Archive.archived_date >= start_date)
    if end_date:
        conditions.append(Archive.archived_date < end_date)

    count_query = select(func.count(Archive.id))
    base_query = select(Archive)
    if conditions:
        count_query = count_query.where(and_(*conditions))
        base_query = base_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0

    query = (
        base_query
        .order_by(desc(Archive.archived_date), desc(Archive.id))
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_archive(db: AsyncSession, archive_id: int) -> Archive:
    archive = await db.get(Archive, archive_id)
    if not archive:
        raise RecordNotFound("Archive", archive_id)
    return archive


async def cleanup_archives(db: AsyncSession, cutoff: datetime) -> int:
    """Delete archive rows archived before `cutoff`. Returns the number removed."""
    result = await db.execute(delete(Archive).where(Archive.archived_date < cutoff))
    await db.commit()
    removed = result.rowcount or 0
    logger.info(f"[Archive] Removed {removed} archive rows older than {cutoff.date()}")
    return removed
