"""
Alert Service
Low-stock scanning, urgency classification and acknowledgement.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_

from partstock.core.exceptions import AlertNotFound
from partstock.db.enums import AlertUrgency, AlertType, InventoryStatus
from partstock.db.models import Alert, Inventory

logger = logging.getLogger(__name__)


def determine_urgency(stock: int, reorder_level: int) -> str:
    """
    Map a stock level onto the urgency ladder.

    0 units is critical, up to half the reorder level is high, up to three
    quarters is medium, anything above is low.
    """
    if stock <= 0:
        return AlertUrgency.critical.value
    if stock <= reorder_level * 0.5:
        return AlertUrgency.high.value
    if stock <= reorder_level * 0.75:
        return AlertUrgency.medium.value
    return AlertUrgency.low.value


def alert_message(item_name: str, stock: int, urgency: str) -> str:
    if urgency == AlertUrgency.critical.value:
        return f"CRITICAL: {item_name} is out of stock! Immediate restocking required."
    if urgency == AlertUrgency.high.value:
        return f"HIGH PRIORITY: {item_name} stock is critically low ({stock} units remaining)."
    if urgency == AlertUrgency.medium.value:
        return f"MEDIUM: {item_name} stock is below recommended levels ({stock} units remaining)."
    return f"LOW: {item_name} is approaching reorder level ({stock} units remaining)."


async def low_stock_items(db: AsyncSession) -> list[Inventory]:
    """Active items at or below their reorder level, emptiest first."""
    q = (
        select(Inventory)
        .where(
            Inventory.status == InventoryStatus.active.value,
            Inventory.stock <= Inventory.reorder_level,
        )
        .order_by(Inventory.stock.asc(), Inventory.item_id.asc())
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def generate_low_stock_alerts(db: AsyncSession) -> dict:
    """
    Create alert rows for every active low-stock item.

    An item already carrying an unacknowledged alert of the same type is
    skipped, so repeated scans do not pile up duplicates.

    Returns:
        dict with alerts_created and total_low_stock_items
    """
    items = await low_stock_items(db)
    created = 0

    for item in items:
        alert_type = AlertType.out_of_stock.value if item.stock <= 0 else AlertType.low_stock.value
        existing = await db.execute(
            select(Alert.id).where(
                Alert.item_id == item.item_id,
                Alert.alert_type == alert_type,
                Alert.acknowledged.is_(False),
            ).limit(1)
        )
        if existing.scalar_one_or_none() is not None:
            continue

        urgency = determine_urgency(item.stock, item.reorder_level)
        db.add(Alert(
            item_id=item.item_id,
            item_name=item.item_name,
            current_stock=item.stock,
            reorder_level=item.reorder_level,
            category=item.category,
            supplier=item.supplier,
            urgency=urgency,
            alert_type=alert_type,
            message=alert_message(item.item_name, item.stock, urgency),
        ))
        created += 1

    await db.commit()

    logger.info(f"[Alerts] Scan complete: {created} new alerts, {len(items)} low-stock items")

    return {
        "alerts_created": created,
        "total_low_stock_items": len(items),
    }


async def list_alerts(
    db: AsyncSession,
    acknowledged: Optional[bool] = None,
    urgency: Optional[str] = None,
    alert_type: Optional[str] = None,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[Alert], int]:
    conditions = []
    if acknowledged is not None:
        conditions.append(Alert.acknowledged.is_(acknowledged))
    if urgency:
        conditions.append(Alert.urgency == urgency)
    if alert_type:
        conditions.append(Alert.alert_type == alert_type)

    count_q = select(func.count(Alert.id))
    q = select(Alert)
    if conditions:
        count_q = count_q.where(and_(*conditions))
        q = q.where(and_(*conditions))

    total = (await db.execute(count_q)).scalar() or 0
    q = q.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit).offset(offset)
    result = await db.execute(q)
    return list(result.scalars().all()), total


async def alert_statistics(db: AsyncSession) -> dict:
    """Counts by acknowledgement, urgency and type plus the newest open alerts."""
    total = (await db.execute(select(func.count(Alert.id)))).scalar() or 0
    unacked = (await db.execute(
        select(func.count(Alert.id)).where(Alert.acknowledged.is_(False))
    )).scalar() or 0

    by_urgency = {u.value: 0 for u in AlertUrgency}
    rows = await db.execute(
        select(Alert.urgency, func.count(Alert.id))
        .where(Alert.acknowledged.is_(False))
        .group_by(Alert.urgency)
    )
    for urgency, count in rows.all():
        by_urgency[urgency] = count

    by_type = {}
    rows = await db.execute(
        select(Alert.alert_type, func.count(Alert.id))
        .where(Alert.acknowledged.is_(False))
        .group_by(Alert.alert_type)
    )
    for alert_type, count in rows.all():
        by_type[alert_type] = count

    recent = await db.execute(
        select(Alert)
        .where(Alert.acknowledged.is_(False))
        .order_by(Alert.created_at.desc(), Alert.id.desc())
        .limit(5)
    )

    return {
        "total_alerts": total,
        "unacknowledged_alerts": unacked,
        "acknowledged_alerts": total - unacked,
        "critical_alerts": by_urgency[AlertUrgency.critical.value],
        "high_priority_alerts": by_urgency[AlertUrgency.high.value],
        "alerts_by_urgency": by_urgency,
        "alerts_by_type": by_type,
        "recent_alerts": list(recent.scalars().all()),
    }


async def acknowledge(db: AsyncSession, alert_id: int, actor: str) -> Alert:
    """
    Mark an alert as acknowledged.

    An alert that is already acknowledged keeps its original
    acknowledged_by / acknowledged_at.
    """
    alert = await db.get(Alert, alert_id)
    if not alert:
        raise AlertNotFound(alert_id)

    if not alert.acknowledged:
        alert.acknowledged = True
        alert.acknowledged_by = actor
        alert.acknowledged_at = datetime.utcnow()
        await db.commit()
        logger.info(f"[Alerts] Alert {alert_id} acknowledged by {actor}")

    return alert


async def bulk_acknowledge(db: AsyncSession, alert_ids: list[int], actor: str) -> int:
    """Acknowledge every open alert in `alert_ids`. Returns how many changed."""
    result = await db.execute(
        update(Alert)
        .where(Alert.id.in_(alert_ids), Alert.acknowledged.is_(False))
        .values(
            acknowledged=True,
            acknowledged_by=actor,
            acknowledged_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    updated = result.rowcount or 0
    logger.info(f"[Alerts] Bulk acknowledged {updated} alerts by {actor}")
    return updated


async def cleanup(db: AsyncSession, days: int) -> int:
    """Delete acknowledged alerts acknowledged more than `days` ago."""
    cutoff = datetime.utcnow() - timedelta(days=days)
    result = await db.execute(
        delete(Alert)
        .where(Alert.acknowledged.is_(True), Alert.acknowledged_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    deleted = result.rowcount or 0
    logger.info(f"[Alerts] Cleaned up {deleted} acknowledged alerts older than {days} days")
    return deleted
