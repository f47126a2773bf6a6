"""
Reservation Service
Job-order holds against stock: pending -> approved -> completed, or
rejected / cancelled.

Approved reservations hold stock back from sale (available stock drops);
physical stock only moves when a reservation is completed.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from partstock.core.config import settings
from partstock.core.exceptions import (
    ReservationNotFound, InvalidReservationState, ReservationExpired, InsufficientStock,
)
from partstock.db.enums import ReservationStatus, TransactionType, ACTIVE_RESERVATION_STATUSES
from partstock.db.models import Reservation, StockTransaction
from partstock.services.audit import reservation_snapshot
from partstock.services.events import emit_event, ReservationUpdated
from partstock.services.inventory import get_item, available_stock, _apply_stock_change

logger = logging.getLogger(__name__)


async def get_reservation(
    session: AsyncSession,
    reservation_id: int,
    lock: bool = False,
) -> Reservation:
    q = select(Reservation).where(Reservation.id == reservation_id)
    if lock:
        q = q.with_for_update()
    res = await session.execute(q)
    reservation = res.scalar_one_or_none()
    if not reservation:
        raise ReservationNotFound(reservation_id)
    return reservation


async def list_reservations(
    session: AsyncSession,
    status: Optional[str] = None,
    job_order: Optional[str] = None,
    item_id: Optional[str] = None,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[Reservation], int]:
    """
    List reservations, newest request first.

    Returns:
        Tuple of (reservations, total count)
    """
    conditions = []
    if status:
        conditions.append(Reservation.status == status)
    if job_order:
        conditions.append(Reservation.job_order_number == job_order)
    if item_id:
        conditions.append(Reservation.item_id == item_id)

    count_q = select(func.count(Reservation.id))
    q = select(Reservation)
    if conditions:
        count_q = count_q.where(and_(*conditions))
        q = q.where(and_(*conditions))

    total = (await session.execute(count_q)).scalar() or 0
    q = q.order_by(Reservation.requested_date.desc(), Reservation.id.desc()).limit(limit).offset(offset)
    res = await session.execute(q)
    return list(res.scalars().all()), total


def _resolve_expiry(expires_at: Optional[datetime], now: datetime) -> datetime:
    if expires_at is None:
        return now + timedelta(days=settings.RESERVATION_TTL_DAYS)
    # Store naive UTC like every other timestamp
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    if expires_at <= now:
        raise ValueError("expires_at must be in the future")
    return expires_at


async def _stage_reservation(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    job_order_number: str,
    requested_by: str,
    expires_at: datetime,
    notes: Optional[str] = None,
    is_urgent: bool = False,
    estimated_completion: Optional[datetime] = None,
) -> Reservation:
    """Add a pending reservation and its ledger hold row. Does not commit."""
    item = await get_item(session, item_id, lock=True)
    now = datetime.utcnow()

    reservation = Reservation(
        item_id=item_id,
        quantity=quantity,
        job_order_number=job_order_number,
        requested_by=requested_by,
        requested_date=now,
        expires_at=expires_at,
        estimated_completion=estimated_completion,
        is_urgent=is_urgent,
        notes=notes,
    )
    reservation.set_status(ReservationStatus.pending.value)
    session.add(reservation)

    # Hold marker only: previous and new stock are equal
    session.add(StockTransaction(
        item_id=item_id,
        transaction_type=TransactionType.reservation.value,
        quantity=-quantity,
        previous_stock=item.stock,
        new_stock=item.stock,
        reference_number=job_order_number,
        notes=f"Reserved for job order: {job_order_number}",
        created_by=requested_by,
    ))
    await session.flush()

    await emit_event(session, ReservationUpdated(
        reservation=reservation, action="created", actor=requested_by,
    ))
    return reservation


async def reserve(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    job_order_number: str,
    requested_by: str,
    expires_at: Optional[datetime] = None,
    notes: Optional[str] = None,
    is_urgent: bool = False,
    estimated_completion: Optional[datetime] = None,
) -> Reservation:
    """
    Reserve parts for a job order.

    Args:
        session: Database session
        item_id: SKU to reserve
        quantity: Units requested (>= 1)
        job_order_number: Job order the parts are for
        requested_by: Staff member requesting
        expires_at: Future expiry, defaults to now + RESERVATION_TTL_DAYS
        notes: Optional notes
        is_urgent: Flag for the job-order board
        estimated_completion: Expected job completion

    Raises:
        ItemNotFound: If the SKU does not exist
        InsufficientStock: If available stock cannot cover the quantity
        ValueError: If expires_at is not in the future
    """
    expiry = _resolve_expiry(expires_at, datetime.utcnow())

    item = await get_item(session, item_id, lock=True)
    available = await available_stock(session, item)
    if available < quantity:
        raise InsufficientStock(item_id, quantity, available)

    reservation = await _stage_reservation(
        session, item_id, quantity, job_order_number, requested_by, expiry,
        notes=notes, is_urgent=is_urgent, estimated_completion=estimated_completion,
    )
    await session.commit()

    logger.info(f"[Reservations] Reserved {quantity} x {item_id} for {job_order_number} (#{reservation.id})")
    return reservation


async def reserve_multiple(
    session: AsyncSession,
    job_order_number: str,
    requested_by: str,
    items: list[dict],
    expires_at: Optional[datetime] = None,
    is_urgent: bool = False,
) -> list[Reservation]:
    """
    Reserve several parts for one job order, all or nothing.

    Quantities requested for the same SKU are summed before the stock check,
    so two lines cannot each pass against the same units.
    """
    expiry = _resolve_expiry(expires_at, datetime.utcnow())

    totals: dict[str, int] = {}
    for line in items:
        totals[line["item_id"]] = totals.get(line["item_id"], 0) + int(line["quantity"])

    for item_id in sorted(totals):
        item = await get_item(session, item_id, lock=True)
        available = await available_stock(session, item)
        if available < totals[item_id]:
            raise InsufficientStock(item_id, totals[item_id], available)

    reservations = []
    for line in items:
        reservations.append(await _stage_reservation(
            session, line["item_id"], int(line["quantity"]), job_order_number,
            requested_by, expiry, notes=line.get("notes"), is_urgent=is_urgent,
        ))
    await session.commit()

    logger.info(f"[Reservations] Reserved {len(reservations)} lines for {job_order_number}")
    return reservations


async def approve(
    session: AsyncSession,
    reservation_id: int,
    approved_by: str,
    notes: Optional[str] = None,
) -> Reservation:
    """
    Approve a pending reservation, placing the hold on stock.

    Raises:
        InvalidReservationState: If not pending
        ReservationExpired: If past its expiry
        InsufficientStock: If other holds leave too little stock
    """
    reservation = await get_reservation(session, reservation_id, lock=True)
    if reservation.status != ReservationStatus.pending.value:
        raise InvalidReservationState(reservation_id, reservation.status, "approve")
    if reservation.is_expired():
        raise ReservationExpired(reservation_id)

    item = await get_item(session, reservation.item_id, lock=True)
    available = await available_stock(session, item, exclude_reservation_id=reservation.id)
    if available < reservation.quantity:
        raise InsufficientStock(item.item_id, reservation.quantity, available)

    before = reservation_snapshot(reservation)
    reservation.set_status(ReservationStatus.approved.value)
    reservation.approved_by = approved_by
    reservation.approved_date = datetime.utcnow()
    if notes:
        reservation.notes = notes
    await session.flush()

    await emit_event(session, ReservationUpdated(
        reservation=reservation, action="approved", actor=approved_by, old_data=before,
    ))
    await session.commit()

    logger.info(f"[Reservations] Approved #{reservation_id} by {approved_by}")
    return reservation


async def reject(
    session: AsyncSession,
    reservation_id: int,
    approved_by: str,
    notes: str,
) -> Reservation:
    reservation = await get_reservation(session, reservation_id, lock=True)
    if reservation.status != ReservationStatus.pending.value:
        raise InvalidReservationState(reservation_id, reservation.status, "reject")

    before = reservation_snapshot(reservation)
    reservation.set_status(ReservationStatus.rejected.value)
    reservation.approved_by = approved_by
    reservation.approved_date = datetime.utcnow()
    reservation.notes = notes
    await session.flush()

    await emit_event(session, ReservationUpdated(
        reservation=reservation, action="rejected", actor=approved_by, old_data=before,
    ))
    await session.commit()

    logger.info(f"[Reservations] Rejected #{reservation_id} by {approved_by}")
    return reservation


async def complete(
    session: AsyncSession,
    reservation_id: int,
    completed_by: str,
    actual_quantity: Optional[int] = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Consume an approved reservation.

    The hold is released and the parts actually used leave physical stock
    through a sale booked against the job order.

    Returns:
        dict with reservation, stock_deducted, new_stock_level
    """
    reservation = await get_reservation(session, reservation_id, lock=True)
    if reservation.status != ReservationStatus.approved.value:
        raise InvalidReservationState(reservation_id, reservation.status, "complete")

    used = actual_quantity or reservation.quantity
    item = await get_item(session, reservation.item_id, lock=True)
    if item.stock < used:
        raise InsufficientStock(item.item_id, used, item.stock)
    if used > reservation.quantity:
        # Parts beyond the hold must not come out of other approved holds
        free = await available_stock(session, item, exclude_reservation_id=reservation.id)
        if used > free:
            raise InsufficientStock(item.item_id, used, free)

    before = reservation_snapshot(reservation)
    reservation.set_status(ReservationStatus.completed.value)
    if notes:
        reservation.notes = notes

    await _apply_stock_change(
        session,
        item,
        quantity=-used,
        transaction_type=TransactionType.sale.value,
        actor=completed_by,
        reference_number=reservation.job_order_number,
        notes=f"Completed reservation #{reservation.id}",
    )
    await emit_event(session, ReservationUpdated(
        reservation=reservation, action="completed", actor=completed_by, old_data=before,
    ))
    await session.commit()

    logger.info(f"[Reservations] Completed #{reservation_id}: {used} x {item.item_id}, new_stock={item.stock}")

    return {
        "reservation": reservation,
        "stock_deducted": used,
        "new_stock_level": item.stock,
    }


async def cancel(
    session: AsyncSession,
    reservation_id: int,
    cancelled_by: str,
    reason: str,
) -> Reservation:
    """Cancel a pending or approved reservation; an approved hold is released."""
    reservation = await get_reservation(session, reservation_id, lock=True)
    if reservation.status not in ACTIVE_RESERVATION_STATUSES:
        raise InvalidReservationState(reservation_id, reservation.status, "cancel")

    before = reservation_snapshot(reservation)
    reservation.set_status(ReservationStatus.cancelled.value)
    reservation.notes = reason
    await session.flush()

    await emit_event(session, ReservationUpdated(
        reservation=reservation, action="cancelled", actor=cancelled_by, old_data=before,
    ))
    await session.commit()

    logger.info(f"[Reservations] Cancelled #{reservation_id} by {cancelled_by}: {reason}")
    return reservation


async def summary(session: AsyncSession) -> dict:
    """Counts for the job-order board."""
    now = datetime.utcnow()
    soon = now + timedelta(days=settings.RESERVATION_EXPIRING_SOON_DAYS)

    by_status = {s.value: 0 for s in ReservationStatus}
    rows = await session.execute(
        select(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status)
    )
    for status, count in rows.all():
        by_status[status] = count

    expiring = (await session.execute(
        select(func.count(Reservation.id)).where(
            Reservation.status == ReservationStatus.approved.value,
            Reservation.expires_at.is_not(None),
            Reservation.expires_at >= now,
            Reservation.expires_at <= soon,
        )
    )).scalar() or 0

    urgent = (await session.execute(
        select(func.count(Reservation.id)).where(
            Reservation.is_urgent.is_(True),
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
        )
    )).scalar() or 0

    return {
        "total_active": by_status[ReservationStatus.pending.value] + by_status[ReservationStatus.approved.value],
        "pending_approvals": by_status[ReservationStatus.pending.value],
        "expiring_soon": expiring,
        "urgent_active": urgent,
        "by_status": by_status,
    }


async def expire_stale(session: AsyncSession, actor: Optional[str] = None) -> int:
    """
    Cancel pending and approved reservations whose expiry has passed.

    Returns:
        Number of reservations expired
    """
    actor = actor or settings.DEFAULT_ACTOR
    now = datetime.utcnow()
    res = await session.execute(
        select(Reservation)
        .where(
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
            Reservation.expires_at.is_not(None),
            Reservation.expires_at < now,
        )
        .with_for_update()
    )
    stale = list(res.scalars().all())

    for reservation in stale:
        before = reservation_snapshot(reservation)
        reservation.set_status(ReservationStatus.cancelled.value)
        reservation.notes = f"Expired on {reservation.expires_at.isoformat()}"
        await emit_event(session, ReservationUpdated(
            reservation=reservation, action="expired", actor=actor, old_data=before,
        ))
    await session.commit()

    if stale:
        logger.info(f"[Reservations] Expired {len(stale)} stale reservations")
    return len(stale)
