"""
Reservation API Endpoints
Job-order reservations: reserve, approve, reject, complete, cancel.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.core.logging import reservations_logger
from partstock.core.security import get_actor
from partstock.db.database import get_db
from partstock.db.enums import ReservationStatus
from partstock.schemas.reservations import (
    ReservationCreate,
    MultiReservationCreate,
    ReservationApprove,
    ReservationReject,
    ReservationComplete,
    ReservationCancel,
    ReservationResponse,
)
from partstock.services import reservations as reservation_service

router = APIRouter()


@router.get("/")
async def list_reservations(
    status: Optional[ReservationStatus] = Query(None),
    job_order: Optional[str] = Query(None),
    item_id: Optional[str] = Query(None),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await reservation_service.list_reservations(
        db,
        status=status.value if status else None,
        job_order=job_order,
        item_id=item_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(ReservationResponse, rows, total, pagination)


@router.get("/summary")
async def reservation_summary(db: AsyncSession = Depends(get_db)):
    return success(await reservation_service.summary(db))


@router.post("/reserve", status_code=201)
async def reserve(
    payload: ReservationCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Reserve parts for a job order. Available stock must cover the quantity."""
    try:
        reservation = await reservation_service.reserve(
            db,
            payload.item_id,
            payload.quantity,
            payload.job_order_number,
            payload.requested_by or actor,
            expires_at=payload.expires_at,
            notes=payload.notes,
            is_urgent=payload.is_urgent,
            estimated_completion=payload.estimated_completion,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return success(serialize(ReservationResponse, reservation), "Item reserved successfully")


@router.post("/reserve-multiple", status_code=201)
async def reserve_multiple(
    payload: MultiReservationCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Reserve several parts for one job order; nothing is reserved if any line is short."""
    try:
        reservations = await reservation_service.reserve_multiple(
            db,
            payload.job_order_number,
            payload.requested_by or actor,
            [line.model_dump() for line in payload.items],
            expires_at=payload.expires_at,
            is_urgent=payload.is_urgent,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    reservations_logger.info(
        "Job order reserved",
        job_order=payload.job_order_number,
        lines=len(reservations),
    )
    return success(
        [serialize(ReservationResponse, r) for r in reservations],
        f"{len(reservations)} items reserved for job order {payload.job_order_number}",
    )


@router.get("/{reservation_id}")
async def get_reservation(reservation_id: int, db: AsyncSession = Depends(get_db)):
    reservation = await reservation_service.get_reservation(db, reservation_id)
    return success(serialize(ReservationResponse, reservation))


@router.put("/{reservation_id}/approve")
async def approve_reservation(
    reservation_id: int,
    payload: Optional[ReservationApprove] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    payload = payload or ReservationApprove()
    reservation = await reservation_service.approve(
        db, reservation_id, payload.approved_by or actor, notes=payload.notes,
    )
    return success(serialize(ReservationResponse, reservation), "Reservation approved")


@router.put("/{reservation_id}/reject")
async def reject_reservation(
    reservation_id: int,
    payload: ReservationReject,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    reservation = await reservation_service.reject(
        db, reservation_id, payload.approved_by or actor, payload.notes,
    )
    return success(serialize(ReservationResponse, reservation), "Reservation rejected")


@router.put("/{reservation_id}/complete")
async def complete_reservation(
    reservation_id: int,
    payload: Optional[ReservationComplete] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Consume an approved reservation and deduct the parts actually used."""
    payload = payload or ReservationComplete()
    result = await reservation_service.complete(
        db,
        reservation_id,
        payload.completed_by or actor,
        actual_quantity=payload.actual_quantity_used,
        notes=payload.notes,
    )
    reservations_logger.info(
        "Reservation completed",
        reservation_id=reservation_id,
        stock_deducted=result["stock_deducted"],
    )
    return success({
        "reservation": serialize(ReservationResponse, result["reservation"]),
        "stock_deducted": result["stock_deducted"],
        "new_stock_level": result["new_stock_level"],
    }, "Reservation completed")


@router.put("/{reservation_id}/cancel")
async def cancel_reservation(
    reservation_id: int,
    payload: ReservationCancel,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    reservation = await reservation_service.cancel(
        db, reservation_id, payload.cancelled_by or actor, payload.reason,
    )
    return success(serialize(ReservationResponse, reservation), "Reservation cancelled")
