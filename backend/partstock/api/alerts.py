"""
Alert API Endpoints
Low-stock alert generation, listing and acknowledgement.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.core.config import settings
from partstock.core.security import get_actor
from partstock.db.database import get_db
from partstock.db.enums import AlertUrgency, AlertType
from partstock.schemas.alerts import BulkAcknowledge, AlertResponse
from partstock.services import alerts as alert_service

router = APIRouter()


@router.get("/")
async def list_alerts(
    acknowledged: Optional[bool] = Query(None),
    urgency: Optional[AlertUrgency] = Query(None),
    alert_type: Optional[AlertType] = Query(None),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    alerts, total = await alert_service.list_alerts(
        db,
        acknowledged=acknowledged,
        urgency=urgency.value if urgency else None,
        alert_type=alert_type.value if alert_type else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(AlertResponse, alerts, total, pagination)


@router.get("/statistics")
async def alert_statistics(db: AsyncSession = Depends(get_db)):
    stats = await alert_service.alert_statistics(db)
    stats["recent_alerts"] = [serialize(AlertResponse, a) for a in stats["recent_alerts"]]
    return success(stats)


@router.post("/generate-low-stock")
async def generate_low_stock_alerts(db: AsyncSession = Depends(get_db)):
    """Create alerts for low-stock items that have no open alert of the same type."""
    result = await alert_service.generate_low_stock_alerts(db)
    return success(result, f"Generated {result['alerts_created']} new alerts")


@router.put("/{alert_id}/acknowledge")
async def acknowledge_alert(
    alert_id: int,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    alert = await alert_service.acknowledge(db, alert_id, actor)
    return success(serialize(AlertResponse, alert), "Alert acknowledged")


@router.post("/bulk-acknowledge")
async def bulk_acknowledge_alerts(
    payload: BulkAcknowledge,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    updated = await alert_service.bulk_acknowledge(db, payload.alert_ids, actor)
    return success({"acknowledged_count": updated}, f"Acknowledged {updated} alerts")


@router.delete("/cleanup")
async def cleanup_alerts(
    days: int = Query(settings.ALERT_RETENTION_DAYS, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Delete acknowledged alerts older than `days`."""
    deleted = await alert_service.cleanup(db, days)
    return success({"deleted_count": deleted}, f"Deleted {deleted} old alerts")
