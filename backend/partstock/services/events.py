"""
Domain events and their listeners.

Events are dispatched in-process inside the caller's transaction: listeners
only stage rows on the session, so the archive trail commits or rolls back
together with the stock change that produced it. Redis broadcasts are
best-effort and never raise.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Callable, Awaitable
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from partstock.core.redis import redis_client, LOW_STOCK_CHANNEL, RESERVATION_CHANNEL
from partstock.db.enums import ArchiveEntityType, ReportType
from partstock.db.models import Inventory, Reservation, Report
from partstock.services.alerts import determine_urgency
from partstock.services.audit import record_archive, reservation_snapshot

logger = logging.getLogger(__name__)

AUTO_ALERT_AUTHOR = "System - Auto Alert"


@dataclass
class StockUpdated:
    item: Inventory
    action: str
    previous_stock: int
    actor: str
    reference_number: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class LowStockAlert:
    item: Inventory
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def alert_level(self) -> str:
        return determine_urgency(self.item.stock, self.item.reorder_level)


@dataclass
class ReservationUpdated:
    reservation: Reservation
    action: str
    actor: str
    old_data: Optional[dict] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


Listener = Callable[[AsyncSession, object], Awaitable[None]]
_listeners: dict[type, list[Listener]] = defaultdict(list)


def listens_to(event_type: type):
    """Register the decorated coroutine as a listener for `event_type`."""
    def decorator(func: Listener) -> Listener:
        _listeners[event_type].append(func)
        return func
    return decorator


async def emit_event(db: AsyncSession, event) -> None:
    logger.debug("Event emitted: %s", type(event).__name__)
    for listener in _listeners.get(type(event), []):
        await listener(db, event)


# ---------------------- Listeners ----------------------

@listens_to(StockUpdated)
async def archive_stock_change(db: AsyncSession, event: StockUpdated) -> None:
    item = event.item
    record_archive(
        db,
        entity_type=ArchiveEntityType.inventory.value,
        entity_id=item.id,
        action=event.action,
        old_data={"previous_stock": event.previous_stock},
        new_data={
            "current_stock": item.stock,
            "item_id": item.item_id,
            "item_name": item.item_name,
            "category": item.category,
        },
        actor=event.actor,
        reference_number=event.reference_number,
        notes=f"Stock {event.action} operation",
        archived_date=event.timestamp,
    )
    logger.info(f"[Inventory] Stock updated for {item.item_id}: {event.action}, {event.previous_stock} -> {item.stock}")

    # Alert once on the way down; restocks that stay low do not re-alert
    dropped = item.stock < event.previous_stock or event.action == "created"
    if item.is_low_stock and dropped:
        await emit_event(db, LowStockAlert(item=item))


@listens_to(LowStockAlert)
async def record_low_stock_report(db: AsyncSession, event: LowStockAlert) -> None:
    item = event.item
    unit_price = float(item.unit_price or 0)
    data = {
        "item_id": item.item_id,
        "item_name": item.item_name,
        "category": item.category,
        "current_stock": item.stock,
        "reorder_level": item.reorder_level,
        "supplier": item.supplier,
        "unit_price": unit_price,
        "alert_level": event.alert_level,
        "estimated_cost_to_reorder": round(item.reorder_level * 2 * unit_price, 2),
        "suggested_order_quantity": item.reorder_level * 2,
        "stock_out_risk": "immediate" if item.stock <= 0 else "high",
    }
    db.add(Report(
        report_type=ReportType.low_stock_alert.value,
        generated_date=event.timestamp,
        report_date=datetime.utcnow().date(),
        data_summary=data,
        generated_by=AUTO_ALERT_AUTHOR,
    ))
    logger.warning(
        f"[Alerts] Low stock alert for {item.item_id}: stock={item.stock}, "
        f"reorder_level={item.reorder_level}, level={event.alert_level}"
    )
    redis_client.publish_event(LOW_STOCK_CHANNEL, {"type": "low_stock_alert", **data})


@listens_to(ReservationUpdated)
async def archive_reservation_change(db: AsyncSession, event: ReservationUpdated) -> None:
    reservation = event.reservation
    new_data = reservation_snapshot(reservation)
    record_archive(
        db,
        entity_type=ArchiveEntityType.reservation.value,
        entity_id=reservation.id,
        action=event.action,
        old_data=event.old_data,
        new_data=new_data,
        actor=event.actor,
        reference_number=reservation.job_order_number,
        notes=f"Reservation {event.action} for job order: {reservation.job_order_number}",
        archived_date=event.timestamp,
    )
    logger.info(
        f"[Reservations] Reservation {reservation.id} {event.action}: item={reservation.item_id}, "
        f"qty={reservation.quantity}, job_order={reservation.job_order_number}, status={reservation.status}"
    )
    redis_client.publish_event(RESERVATION_CHANNEL, {
        "type": "reservation_updated",
        "action": event.action,
        "reservation": new_data,
    })
