"""
Inventory Service Layer
Handles parts records, stock movements and the transaction ledger.
"""
from datetime import datetime, timedelta
from typing import Optional
import math
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, and_

from partstock.core.config import settings
from partstock.core.exceptions import (
    ItemNotFound, DuplicateItem, InsufficientStock, ItemInUse, RecordNotFound,
)
from partstock.db.enums import (
    InventoryStatus, TransactionType, ReservationStatus, ReportType,
    ArchiveEntityType, ACTIVE_RESERVATION_STATUSES,
)
from partstock.db.models import Inventory, StockTransaction, Reservation, Report
from partstock.services.alerts import determine_urgency, low_stock_items
from partstock.services.audit import record_archive, inventory_snapshot
from partstock.services.events import emit_event, StockUpdated

logger = logging.getLogger(__name__)

INITIAL_STOCK_REFERENCE = "INITIAL_STOCK"

# Fields an update may touch; stock is handled separately as an adjustment
EDITABLE_FIELDS = (
    "item_name", "description", "category", "reorder_level",
    "unit_price", "supplier", "location", "status",
)


async def get_item(
    session: AsyncSession,
    item_id: str,
    lock: bool = False,
) -> Inventory:
    """
    Load an item by SKU.

    Args:
        session: Database session
        item_id: SKU
        lock: Take a row lock (SELECT ... FOR UPDATE) for a stock mutation

    Raises:
        ItemNotFound: If no item has this SKU
    """
    q = select(Inventory).where(Inventory.item_id == item_id)
    if lock:
        q = q.with_for_update()
    res = await session.execute(q)
    item = res.scalar_one_or_none()
    if not item:
        raise ItemNotFound(item_id)
    return item


async def reserved_quantity(
    session: AsyncSession,
    item_id: str,
    exclude_reservation_id: Optional[int] = None,
) -> int:
    """Units held by approved reservations for `item_id`."""
    q = select(func.coalesce(func.sum(Reservation.quantity), 0)).where(
        Reservation.item_id == item_id,
        Reservation.status == ReservationStatus.approved.value,
    )
    if exclude_reservation_id is not None:
        q = q.where(Reservation.id != exclude_reservation_id)
    res = await session.execute(q)
    return int(res.scalar() or 0)


async def available_stock(
    session: AsyncSession,
    item: Inventory,
    exclude_reservation_id: Optional[int] = None,
) -> int:
    """Physical stock minus approved holds, never below zero."""
    reserved = await reserved_quantity(session, item.item_id, exclude_reservation_id)
    return max(0, item.stock - reserved)


async def list_inventory(
    session: AsyncSession,
    category: Optional[str] = None,
    low_stock_only: bool = False,
    search: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[Inventory], int]:
    """
    List inventory items with optional filters.

    Args:
        session: Database session
        category: Exact category match
        low_stock_only: Only items at or below their reorder level
        search: Substring of the item name or SKU
        include_inactive: Include inactive and discontinued items
        limit: Maximum items to return
        offset: Pagination offset

    Returns:
        Tuple of (items, total count)
    """
    conditions = []
    if not include_inactive:
        conditions.append(Inventory.status == InventoryStatus.active.value)
    if category:
        conditions.append(Inventory.category == category)
    if low_stock_only:
        conditions.append(Inventory.stock <= Inventory.reorder_level)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Inventory.item_name.ilike(pattern), Inventory.item_id.ilike(pattern)))

    count_q = select(func.count(Inventory.id))
    q = select(Inventory)
    if conditions:
        count_q = count_q.where(and_(*conditions))
        q = q.where(and_(*conditions))

    total = (await session.execute(count_q)).scalar() or 0
    q = q.order_by(Inventory.item_name.asc(), Inventory.id.asc()).limit(limit).offset(offset)
    res = await session.execute(q)
    return list(res.scalars().all()), total


async def create_item(session: AsyncSession, data: dict, actor: str) -> Inventory:
    """
    Create an inventory item.

    Initial stock is booked as a procurement with reference INITIAL_STOCK so
    the ledger accounts for every unit on hand.

    Raises:
        DuplicateItem: If the SKU is taken
    """
    existing = await session.execute(select(Inventory.id).where(Inventory.item_id == data["item_id"]))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateItem(data["item_id"])

    item = Inventory(**{k: v for k, v in data.items() if k != "stock"})
    item.status = InventoryStatus(data.get("status") or InventoryStatus.active).value
    item.stock = int(data.get("stock") or 0)
    item.version = 1
    session.add(item)
    await session.flush()

    if item.stock > 0:
        session.add(StockTransaction(
            item_id=item.item_id,
            transaction_type=TransactionType.procurement.value,
            quantity=item.stock,
            previous_stock=0,
            new_stock=item.stock,
            reference_number=INITIAL_STOCK_REFERENCE,
            notes="Initial stock on item creation",
            created_by=actor,
        ))

    await emit_event(session, StockUpdated(item=item, action="created", previous_stock=0, actor=actor))
    await session.commit()

    logger.info(f"[Inventory] Created item {item.item_id} ({item.item_name}), stock={item.stock}")
    return item


async def update_item(
    session: AsyncSession,
    item_id: str,
    changes: dict,
    actor: str,
) -> Inventory:
    """
    Update descriptive fields of an item.

    A changed `stock` value is not written directly: the difference is booked
    as an adjustment so the ledger stays consistent with the stock column.
    """
    item = await get_item(session, item_id, lock=True)
    before = inventory_snapshot(item)
    notes = changes.pop("notes", None)

    for field_name in EDITABLE_FIELDS:
        if field_name in changes and changes[field_name] is not None:
            value = changes[field_name]
            if field_name == "status":
                value = InventoryStatus(value).value
            setattr(item, field_name, value)

    new_stock = changes.get("stock")
    if new_stock is not None and new_stock != item.stock:
        await _apply_stock_change(
            session,
            item,
            quantity=new_stock - item.stock,
            transaction_type=TransactionType.adjustment.value,
            actor=actor,
            notes=notes or "Stock corrected on item update",
        )
    else:
        item.version = (item.version or 0) + 1

    # Stamp explicitly so the snapshot reflects this write
    item.updated_at = datetime.utcnow()
    record_archive(
        session,
        entity_type=ArchiveEntityType.inventory.value,
        entity_id=item.id,
        action="updated",
        old_data=before,
        new_data=inventory_snapshot(item),
        actor=actor,
        notes=notes or f"Item {item.item_id} updated",
    )
    await session.commit()

    logger.info(f"[Inventory] Updated item {item.item_id}")
    return item


async def delete_item(session: AsyncSession, item_id: str, actor: str) -> None:
    """
    Delete an item together with its reservations and ledger rows.

    Raises:
        ItemInUse: While pending or approved reservations reference the item
    """
    item = await get_item(session, item_id, lock=True)

    active = await session.execute(
        select(func.count(Reservation.id)).where(
            Reservation.item_id == item_id,
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
        )
    )
    active_count = active.scalar() or 0
    if active_count:
        raise ItemInUse(item_id, active_count)

    record_archive(
        session,
        entity_type=ArchiveEntityType.inventory.value,
        entity_id=item.id,
        action="deleted",
        old_data=inventory_snapshot(item),
        new_data=None,
        actor=actor,
        notes=f"Item {item.item_id} deleted",
    )

    # Reservations and ledger rows follow through the relationship cascade
    await session.delete(item)
    await session.commit()

    logger.info(f"[Inventory] Deleted item {item_id}")


async def check_stock_status(session: AsyncSession, item_id: str, quantity: int = 1) -> dict:
    """Stock position of one item for a requested quantity."""
    item = await get_item(session, item_id)
    available = await available_stock(session, item)
    return {
        "item_id": item.item_id,
        "item_name": item.item_name,
        "current_stock": item.stock,
        "available_stock": available,
        "reserved_stock": item.stock - available,
        "requested_quantity": quantity,
        "status": item.stock_status(quantity),
        "is_low_stock": item.is_low_stock,
        "reorder_level": item.reorder_level,
        "supplier": item.supplier,
        "unit_price": float(item.unit_price or 0),
    }


async def _apply_stock_change(
    session: AsyncSession,
    item: Inventory,
    quantity: int,
    transaction_type: str,
    actor: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> StockTransaction:
    """
    Move physical stock on an already locked item and write the ledger row.

    Does not commit.

    Raises:
        InsufficientStock: If an outgoing quantity exceeds physical stock
    """
    if quantity < 0 and item.stock < abs(quantity):
        raise InsufficientStock(item.item_id, abs(quantity), item.stock)

    previous_stock = item.stock
    item.stock = previous_stock + quantity
    item.version = (item.version or 0) + 1

    transaction = StockTransaction(
        item_id=item.item_id,
        transaction_type=transaction_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=item.stock,
        reference_number=reference_number,
        notes=notes,
        created_by=actor,
    )
    session.add(transaction)
    await session.flush()

    await emit_event(session, StockUpdated(
        item=item,
        action=transaction_type,
        previous_stock=previous_stock,
        actor=actor,
        reference_number=reference_number,
    ))
    return transaction


async def adjust_stock(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    transaction_type: str,
    actor: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Apply a signed stock movement under a row lock.

    Args:
        session: Database session
        item_id: SKU to adjust
        quantity: Positive to add, negative to remove
        transaction_type: Ledger type for the movement
        actor: Staff member performing the change
        reference_number: Receipt, PO or job order
        notes: Optional notes

    Returns:
        dict with item, transaction, previous_stock, new_stock, quantity_changed

    Raises:
        ItemNotFound: If the SKU does not exist
        InsufficientStock: If removal exceeds physical stock
    """
    item = await get_item(session, item_id, lock=True)
    previous_stock = item.stock
    transaction = await _apply_stock_change(
        session, item, quantity, TransactionType(transaction_type).value,
        actor, reference_number, notes,
    )
    await session.commit()

    logger.info(f"[Inventory] Adjusted {item_id}: {quantity:+d} ({transaction_type}), new_stock={item.stock}")

    return {
        "item": item,
        "transaction": transaction,
        "previous_stock": previous_stock,
        "new_stock": item.stock,
        "quantity_changed": quantity,
    }


async def add_stock(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    actor: str,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """Book a procurement."""
    if quantity <= 0:
        raise ValueError("Procurement quantity must be > 0")
    return await adjust_stock(
        session, item_id, quantity, TransactionType.procurement.value,
        actor, reference_number, notes,
    )


async def deduct_stock(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    reference_number: str,
    actor: str,
    notes: Optional[str] = None,
) -> dict:
    """
    Book a point-of-sale deduction.

    Units held by approved reservations cannot be sold.

    Raises:
        InsufficientStock: If available (not physical) stock is short
    """
    if quantity <= 0:
        raise ValueError("Sale quantity must be > 0")
    if not reference_number:
        raise ValueError("A sale requires a reference number")

    item = await get_item(session, item_id, lock=True)
    available = await available_stock(session, item)
    if available < quantity:
        raise InsufficientStock(item_id, quantity, available)

    previous_stock = item.stock
    transaction = await _apply_stock_change(
        session, item, -quantity, TransactionType.sale.value,
        actor, reference_number, notes,
    )
    await session.commit()

    logger.info(f"[Inventory] Sale {reference_number}: {item_id} -{quantity}, new_stock={item.stock}")

    return {
        "item": item,
        "transaction": transaction,
        "previous_stock": previous_stock,
        "new_stock": item.stock,
        "quantity_changed": -quantity,
    }


async def log_return_damage(
    session: AsyncSession,
    item_id: str,
    quantity: int,
    kind: str,
    notes: str,
    actor: str,
    reference_number: Optional[str] = None,
) -> dict:
    """Returns put stock back; damaged units are written off."""
    if kind not in (TransactionType.return_.value, TransactionType.damage.value):
        raise ValueError("type must be 'return' or 'damage'")
    signed = quantity if kind == TransactionType.return_.value else -quantity
    return await adjust_stock(session, item_id, signed, kind, actor, reference_number, notes)


async def low_stock_preview(session: AsyncSession) -> list[dict]:
    """Active low-stock items with their urgency; writes nothing."""
    items = await low_stock_items(session)
    return [
        {
            "item_id": item.item_id,
            "item_name": item.item_name,
            "current_stock": item.stock,
            "reorder_level": item.reorder_level,
            "category": item.category,
            "supplier": item.supplier,
            "urgency": determine_urgency(item.stock, item.reorder_level),
        }
        for item in items
    ]


async def _stock_accuracy(session: AsyncSession) -> float:
    """Accuracy from the newest reconciliation report, 100 when none exists."""
    res = await session.execute(
        select(Report)
        .where(Report.report_type == ReportType.reconciliation.value)
        .order_by(Report.report_date.desc(), Report.id.desc())
        .limit(1)
    )
    report = res.scalar_one_or_none()
    if report is None:
        return 100.0
    summary = (report.data_summary or {}).get("summary", {})
    return float(summary.get("accuracy_percentage", 100.0))


async def get_inventory_summary(session: AsyncSession) -> dict:
    """
    Get overall inventory summary statistics.

    Returns:
        dict with overview, category_breakdown, top_value_items, alerts
    """
    active = Inventory.status == InventoryStatus.active.value
    value_expr = Inventory.stock * Inventory.unit_price

    stats = (await session.execute(
        select(
            func.count(Inventory.id),
            func.coalesce(func.sum(value_expr), 0),
        ).where(active)
    )).one()
    total_items, total_value = stats[0], float(stats[1] or 0)

    low_count = (await session.execute(
        select(func.count(Inventory.id)).where(active, Inventory.stock <= Inventory.reorder_level)
    )).scalar() or 0
    out_count = (await session.execute(
        select(func.count(Inventory.id)).where(active, Inventory.stock == 0)
    )).scalar() or 0
    pending = (await session.execute(
        select(func.count(Reservation.id)).where(Reservation.status == ReservationStatus.pending.value)
    )).scalar() or 0

    category_value = func.coalesce(func.sum(value_expr), 0)
    categories = await session.execute(
        select(Inventory.category, func.count(Inventory.id), category_value)
        .where(active)
        .group_by(Inventory.category)
        .order_by(category_value.desc())
    )

    top_items = await session.execute(
        select(Inventory).where(active).order_by(value_expr.desc(), Inventory.id.asc()).limit(10)
    )

    return {
        "overview": {
            "total_items": total_items,
            "total_inventory_value": round(total_value, 2),
            "low_stock_items": low_count,
            "out_of_stock_items": out_count,
            "stock_accuracy": await _stock_accuracy(session),
        },
        "category_breakdown": [
            {"category": c, "item_count": n, "total_value": round(float(v or 0), 2)}
            for c, n, v in categories.all()
        ],
        "top_value_items": [
            {
                "item_id": i.item_id,
                "item_name": i.item_name,
                "category": i.category,
                "stock": i.stock,
                "unit_price": float(i.unit_price or 0),
                "total_value": i.total_value,
            }
            for i in top_items.scalars().all()
        ],
        "alerts": {
            "critical_items": out_count,
            "low_stock_items": low_count,
            "pending_reservations": pending,
        },
    }


async def forecast_demand(session: AsyncSession, item_id: str, days: int = 30) -> dict:
    """
    Moving-average demand forecast from recent sales.

    Averages sales over the last FORECAST_HISTORY_DAYS and projects them over
    `days`. Confidence grows with the number of sales seen, capping at 100
    from 30 sales. A projected shortfall is turned into a reorder suggestion
    with a 20% buffer.
    """
    item = await get_item(session, item_id)
    history_days = settings.FORECAST_HISTORY_DAYS
    since = datetime.utcnow() - timedelta(days=history_days)

    res = await session.execute(
        select(StockTransaction.quantity).where(
            StockTransaction.item_id == item_id,
            StockTransaction.transaction_type == TransactionType.sale.value,
            StockTransaction.created_at >= since,
        )
    )
    sales = [abs(q) for q in res.scalars().all()]
    available = await available_stock(session, item)

    base = {
        "item_id": item.item_id,
        "item_name": item.item_name,
        "current_stock": item.stock,
        "available_stock": available,
        "reorder_level": item.reorder_level,
        "forecast_period_days": days,
        "historical_transactions": len(sales),
    }

    if not sales:
        return {
            **base,
            "historical_daily_average": 0.0,
            "predicted_demand": 0,
            "confidence_level": 0,
            "recommendation": "No historical data available",
            "reorder_suggestion": "Monitor for initial sales pattern",
        }

    daily_average = sum(sales) / history_days
    predicted = daily_average * days
    confidence = min(100.0, len(sales) / 30 * 100)

    recommendation = "Monitor stock levels"
    reorder_suggestion = "Maintain current levels"
    if predicted > available:
        shortfall = predicted - available
        recommendation = f"Reorder recommended: {math.ceil(shortfall)} units needed"
        reorder_suggestion = f"Order {math.ceil(shortfall * 1.2)} units (20% buffer)"

    return {
        **base,
        "historical_daily_average": round(daily_average, 2),
        "predicted_demand": round(predicted),
        "confidence_level": round(confidence),
        "recommendation": recommendation,
        "reorder_suggestion": reorder_suggestion,
    }


# ---------------------- Ledger queries ----------------------

async def list_transactions(
    session: AsyncSession,
    item_id: Optional[str] = None,
    transaction_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[StockTransaction], int]:
    """Ledger rows, newest first. `end_date` is exclusive."""
    conditions = []
    if item_id:
        conditions.append(StockTransaction.item_id == item_id)
    if transaction_type:
        conditions.append(StockTransaction.transaction_type == transaction_type)
    if start_date:
        conditions.append(StockTransaction.created_at >= start_date)
    if end_date:
        conditions.append(StockTransaction.created_at < end_date)

    count_q = select(func.count(StockTransaction.id))
    q = select(StockTransaction)
    if conditions:
        count_q = count_q.where(and_(*conditions))
        q = q.where(and_(*conditions))

    total = (await session.execute(count_q)).scalar() or 0
    q = q.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc()).limit(limit).offset(offset)
    res = await session.execute(q)
    return list(res.scalars().all()), total


async def get_transaction(session: AsyncSession, transaction_id: int) -> StockTransaction:
    transaction = await session.get(StockTransaction, transaction_id)
    if not transaction:
        raise RecordNotFound("Transaction", transaction_id)
    return transaction
