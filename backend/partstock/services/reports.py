"""
Report Service

Aggregates the stock ledger into persisted reports (daily usage, monthly
procurement, reconciliation, low-stock check, forecast) and computes the
non-persisted dashboard analytics.

Monetary values are computed at each item's current unit price.
"""
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Optional, Iterable
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, and_

from partstock.core.exceptions import ReportNotFound, InvalidReportRequest
from partstock.core.logging import log_operation, reports_logger
from partstock.db.enums import (
    ReportType, TransactionType, InventoryStatus, PHYSICAL_TRANSACTION_TYPES,
    ACTIVE_RESERVATION_STATUSES,
)
from partstock.db.models import Inventory, StockTransaction, Report, Reservation
from partstock.services.alerts import determine_urgency, low_stock_items
from partstock.services.inventory import forecast_demand

logger = logging.getLogger(__name__)

AUTOMATED_AUTHOR = "System - Automated Job"


# ---------------------- Date helpers ----------------------

def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00 of `day`, 00:00 of the next day)"""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def shift_month(first_of_month: date, months: int) -> date:
    """First day of the month `months` away from `first_of_month`."""
    index = first_of_month.year * 12 + (first_of_month.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def parse_month(month: Optional[str]) -> date:
    if not month:
        today = datetime.utcnow().date()
        return date(today.year, today.month, 1)
    try:
        parsed = datetime.strptime(month, "%Y-%m")
    except ValueError:
        raise InvalidReportRequest(f"Invalid month '{month}', expected YYYY-MM")
    return date(parsed.year, parsed.month, 1)


def _money(value) -> float:
    return round(float(value or 0), 2)


# ---------------------- Query helpers ----------------------

async def _ledger_between(
    session: AsyncSession,
    start: datetime,
    end: datetime,
    types: Optional[Iterable[str]] = None,
) -> list[tuple[StockTransaction, Inventory]]:
    """Ledger rows in [start, end) joined to their item, oldest first."""
    q = (
        select(StockTransaction, Inventory)
        .join(Inventory, StockTransaction.item_id == Inventory.item_id)
        .where(StockTransaction.created_at >= start, StockTransaction.created_at < end)
    )
    if types is not None:
        q = q.where(StockTransaction.transaction_type.in_(list(types)))
    q = q.order_by(StockTransaction.created_at.asc(), StockTransaction.id.asc())
    res = await session.execute(q)
    return [(row[0], row[1]) for row in res.all()]


def _group_by_item(rows: list[tuple[StockTransaction, Inventory]]) -> "OrderedDict[str, dict]":
    grouped: "OrderedDict[str, dict]" = OrderedDict()
    for txn, item in rows:
        entry = grouped.setdefault(txn.item_id, {"item": item, "transactions": []})
        entry["transactions"].append(txn)
    return grouped


async def _save_report(
    session: AsyncSession,
    report_type: str,
    report_date: date,
    data: dict,
    actor: str,
    automated: bool = False,
    **extra,
) -> Report:
    if automated:
        data["generated_automatically"] = True
        actor = AUTOMATED_AUTHOR
    report = Report(
        report_type=report_type,
        generated_date=datetime.utcnow(),
        report_date=report_date,
        data_summary=data,
        generated_by=actor,
        **extra,
    )
    session.add(report)
    await session.commit()
    logger.info(f"[Reports] Generated {report_type} report for {report_date} (#{report.id}) by {actor}")
    return report


# ---------------------- Persisted reports ----------------------

@log_operation("generate_daily_usage", reports_logger)
async def generate_daily_usage(
    session: AsyncSession,
    report_date: Optional[date] = None,
    actor: str = AUTOMATED_AUTHOR,
    automated: bool = False,
) -> Report:
    """
    Summarise one day of ledger activity by transaction type and item.

    Totals cover sales, procurement and returns; net movement is
    procurement - sales + returns (in value).
    """
    report_date = report_date or datetime.utcnow().date()
    start, end = day_bounds(report_date)
    rows = await _ledger_between(session, start, end)

    by_type: "OrderedDict[str, list]" = OrderedDict()
    type_totals: dict[str, float] = {}
    for txn_type in sorted({txn.transaction_type for txn, _ in rows}):
        typed = [(t, i) for t, i in rows if t.transaction_type == txn_type]
        lines = []
        for item_id, entry in _group_by_item(typed).items():
            item = entry["item"]
            quantity = abs(sum(t.quantity for t in entry["transactions"]))
            unit_price = float(item.unit_price or 0)
            lines.append({
                "item_id": item_id,
                "item_name": item.item_name,
                "category": item.category,
                "total_quantity": quantity,
                "unit_price": unit_price,
                "total_value": _money(quantity * unit_price),
                "transaction_count": len(entry["transactions"]),
            })
        by_type[txn_type] = lines
        type_totals[txn_type] = sum(line["total_value"] for line in lines)

    total_sales = _money(type_totals.get(TransactionType.sale.value, 0))
    total_procurement = _money(type_totals.get(TransactionType.procurement.value, 0))
    total_returns = _money(type_totals.get(TransactionType.return_.value, 0))

    data = {
        "date": report_date.isoformat(),
        "summary_by_type": by_type,
        "totals": {
            "total_sales": total_sales,
            "total_procurement": total_procurement,
            "total_returns": total_returns,
            "net_movement": _money(total_procurement - total_sales + total_returns),
        },
        "transaction_count": len(rows),
    }
    return await _save_report(session, ReportType.daily_usage.value, report_date, data, actor, automated)


@log_operation("generate_monthly_procurement", reports_logger)
async def generate_monthly_procurement(
    session: AsyncSession,
    month: Optional[str] = None,
    actor: str = AUTOMATED_AUTHOR,
    automated: bool = False,
) -> Report:
    """Procurement per item and category for a month, with the month-on-month trend."""
    first = parse_month(month)
    next_first = shift_month(first, 1)
    prev_first = shift_month(first, -1)
    procurement = [TransactionType.procurement.value]

    rows = await _ledger_between(
        session, datetime(first.year, first.month, 1), datetime(next_first.year, next_first.month, 1), procurement,
    )

    items = []
    for item_id, entry in _group_by_item(rows).items():
        item = entry["item"]
        txns = entry["transactions"]
        quantity = sum(t.quantity for t in txns)
        unit_price = float(item.unit_price or 0)
        items.append({
            "item_id": item_id,
            "item_name": item.item_name,
            "category": item.category,
            "supplier": item.supplier,
            "total_quantity": quantity,
            "unit_price": unit_price,
            "total_value": _money(quantity * unit_price),
            "procurement_count": len(txns),
            "average_quantity_per_procurement": round(quantity / len(txns), 2),
        })

    categories: "OrderedDict[str, dict]" = OrderedDict()
    for line in items:
        cat = categories.setdefault(line["category"], {
            "category": line["category"],
            "total_items": 0,
            "total_quantity": 0,
            "total_value": 0.0,
            "items": [],
        })
        cat["total_items"] += 1
        cat["total_quantity"] += line["total_quantity"]
        cat["total_value"] = _money(cat["total_value"] + line["total_value"])
        cat["items"].append(line)

    prev_rows = await _ledger_between(
        session, datetime(prev_first.year, prev_first.month, 1), datetime(first.year, first.month, 1), procurement,
    )
    prev_value = _money(sum(t.quantity * float(i.unit_price or 0) for t, i in prev_rows))
    current_value = _money(sum(line["total_value"] for line in items))
    change = ((current_value - prev_value) / prev_value * 100) if prev_value > 0 else 0
    if not prev_rows:
        trend = "No previous data available"
    else:
        trend = "increasing" if change > 0 else "decreasing"

    data = {
        "month": first.strftime("%Y-%m"),
        "procurement_summary": items,
        "category_wise_summary": list(categories.values()),
        "totals": {
            "total_procurement_value": current_value,
            "total_items_procured": sum(line["total_quantity"] for line in items),
            "unique_items": len(items),
            "total_transactions": len(rows),
        },
        "trends": {
            "previous_month_value": prev_value,
            "current_month_value": current_value,
            "percentage_change": round(change, 2),
            "trend": trend,
        },
    }
    return await _save_report(session, ReportType.monthly_procurement.value, first, data, actor, automated)


async def _opening_stock(session: AsyncSession, item: Inventory, day_start: datetime) -> int:
    """Physical stock of `item` at `day_start`, reconstructed from the ledger."""
    physical = StockTransaction.transaction_type.in_(PHYSICAL_TRANSACTION_TYPES)
    first_after = await session.execute(
        select(StockTransaction.previous_stock)
        .where(StockTransaction.item_id == item.item_id, physical, StockTransaction.created_at >= day_start)
        .order_by(StockTransaction.created_at.asc(), StockTransaction.id.asc())
        .limit(1)
    )
    value = first_after.scalar_one_or_none()
    if value is not None:
        return value

    last_before = await session.execute(
        select(StockTransaction.new_stock)
        .where(StockTransaction.item_id == item.item_id, physical, StockTransaction.created_at < day_start)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(1)
    )
    value = last_before.scalar_one_or_none()
    return value if value is not None else item.stock


async def _suspicious_stock(session: AsyncSession) -> list[dict]:
    """Active items with negative stock or more than ten times their reorder level."""
    res = await session.execute(
        select(Inventory)
        .where(
            Inventory.status == InventoryStatus.active.value,
            (Inventory.stock < 0) | (Inventory.stock > Inventory.reorder_level * 10),
        )
        .order_by(Inventory.item_id.asc())
    )
    return [
        {
            "item_id": item.item_id,
            "item_name": item.item_name,
            "current_stock": item.stock,
            "reorder_level": item.reorder_level,
            "issue": "Negative stock" if item.stock < 0 else "Excessive stock",
            "severity": "high" if item.stock < 0 else "medium",
        }
        for item in res.scalars().all()
    ]


def _recommendations(low_stock: int, out_of_stock: int, accuracy: float) -> list[dict]:
    recommendations = []
    if low_stock > 0:
        recommendations.append({
            "type": "reorder",
            "priority": "high",
            "message": f"Review and reorder {low_stock} low stock items",
            "action": "Generate purchase orders for items below reorder level",
        })
    if out_of_stock > 0:
        recommendations.append({
            "type": "urgent_reorder",
            "priority": "critical",
            "message": f"Immediate attention required for {out_of_stock} out-of-stock items",
            "action": "Emergency procurement or find alternative suppliers",
        })
    if accuracy < 95:
        recommendations.append({
            "type": "accuracy",
            "priority": "medium",
            "message": f"Stock accuracy is below optimal level ({accuracy}%)",
            "action": "Conduct cycle counting and review unbooked stock movements",
        })
    return recommendations


@log_operation("generate_reconciliation", reports_logger)
async def generate_reconciliation(
    session: AsyncSession,
    report_date: Optional[date] = None,
    actor: str = AUTOMATED_AUTHOR,
    automated: bool = False,
) -> Report:
    """
    Compare each item's ledger-derived closing stock with its actual stock.

    Opening stock is reconstructed from the ledger, incoming and outgoing are
    the day's physical movements (reservation holds excluded). For today the
    actual stock is the live stock column; for a past day it is the last
    recorded balance of that day.

    The report also lists suspicious stock levels (negative, or above ten
    times the reorder level) and reorder / accuracy recommendations.
    """
    report_date = report_date or datetime.utcnow().date()
    start, end = day_bounds(report_date)
    is_current = report_date >= datetime.utcnow().date()

    items_res = await session.execute(
        select(Inventory)
        .where(Inventory.created_at < end)
        .order_by(Inventory.item_id.asc())
    )
    items = list(items_res.scalars().all())

    day_rows = await _ledger_between(session, start, end, PHYSICAL_TRANSACTION_TYPES)
    by_item = _group_by_item(day_rows)

    details = []
    for item in items:
        txns = by_item.get(item.item_id, {"transactions": []})["transactions"]
        opening = await _opening_stock(session, item, start)
        incoming = sum(t.quantity for t in txns if t.quantity > 0)
        outgoing = abs(sum(t.quantity for t in txns if t.quantity < 0))
        calculated = opening + incoming - outgoing
        if is_current:
            actual = item.stock
        else:
            actual = txns[-1].new_stock if txns else opening
        variance = actual - calculated
        details.append({
            "item_id": item.item_id,
            "item_name": item.item_name,
            "category": item.category,
            "opening_stock": opening,
            "incoming_stock": incoming,
            "outgoing_stock": outgoing,
            "calculated_closing_stock": calculated,
            "actual_stock": actual,
            "variance": variance,
            "variance_value": _money(variance * float(item.unit_price or 0)),
            "transaction_count": len(txns),
            "has_discrepancy": variance != 0,
        })

    discrepancies = [d for d in details if d["has_discrepancy"]]
    checked = len(details)
    accuracy = round((checked - len(discrepancies)) / checked * 100, 2) if checked else 100.0

    # Recommendations reflect the live stock picture, whatever day is reconciled
    low = await low_stock_items(session)
    out_of_stock = sum(1 for item in low if item.stock <= 0)

    data = {
        "date": report_date.isoformat(),
        "reconciliation_details": details,
        "summary": {
            "total_items_checked": checked,
            "items_with_discrepancies": len(discrepancies),
            "total_variance_value": _money(sum(d["variance_value"] for d in details)),
            "accuracy_percentage": accuracy,
        },
        "discrepancies": discrepancies,
        "suspicious_stock": await _suspicious_stock(session),
        "recommendations": _recommendations(len(low), out_of_stock, accuracy),
    }
    return await _save_report(session, ReportType.reconciliation.value, report_date, data, actor, automated)


async def generate_low_stock_report(
    session: AsyncSession,
    report_date: Optional[date] = None,
    actor: str = AUTOMATED_AUTHOR,
    automated: bool = True,
) -> Report:
    """Snapshot of every active low-stock item with its estimated reorder cost."""
    report_date = report_date or datetime.utcnow().date()
    items = await low_stock_items(session)

    lines = []
    for item in items:
        unit_price = float(item.unit_price or 0)
        lines.append({
            "item_id": item.item_id,
            "item_name": item.item_name,
            "category": item.category,
            "current_stock": item.stock,
            "reorder_level": item.reorder_level,
            "supplier": item.supplier,
            "unit_price": unit_price,
            "urgency": determine_urgency(item.stock, item.reorder_level),
            "estimated_reorder_cost": _money(item.reorder_level * 2 * unit_price),
        })

    data = {
        "check_date": report_date.isoformat(),
        "total_low_stock_items": len(lines),
        "critical_items": sum(1 for line in lines if line["current_stock"] <= 0),
        "items": lines,
        "total_estimated_reorder_cost": _money(sum(line["estimated_reorder_cost"] for line in lines)),
    }
    return await _save_report(session, ReportType.low_stock_alert.value, report_date, data, actor, automated)


async def generate_forecast(
    session: AsyncSession,
    item_id: str,
    days: int = 30,
    actor: str = AUTOMATED_AUTHOR,
) -> Report:
    """Persist a demand forecast for one item."""
    forecast = await forecast_demand(session, item_id, days)
    return await _save_report(
        session,
        ReportType.forecast.value,
        datetime.utcnow().date(),
        forecast,
        actor,
        forecast_period=days,
        forecast_value=float(forecast["predicted_demand"]),
        confidence_level=float(forecast["confidence_level"]),
    )


async def list_reports(
    session: AsyncSession,
    report_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 15,
    offset: int = 0,
) -> tuple[list[Report], int]:
    conditions = []
    if report_type:
        conditions.append(Report.report_type == report_type)
    if start_date:
        conditions.append(Report.report_date >= start_date)
    if end_date:
        conditions.append(Report.report_date <= end_date)

    count_q = select(func.count(Report.id))
    q = select(Report)
    if conditions:
        count_q = count_q.where(and_(*conditions))
        q = q.where(and_(*conditions))

    total = (await session.execute(count_q)).scalar() or 0
    q = q.order_by(Report.generated_date.desc(), Report.id.desc()).limit(limit).offset(offset)
    res = await session.execute(q)
    return list(res.scalars().all()), total


async def get_report(session: AsyncSession, report_id: int) -> Report:
    report = await session.get(Report, report_id)
    if not report:
        raise ReportNotFound(report_id)
    return report


async def cleanup_reports(session: AsyncSession, cutoff: datetime) -> int:
    """Delete reports generated before `cutoff`."""
    result = await session.execute(delete(Report).where(Report.generated_date < cutoff))
    await session.commit()
    removed = result.rowcount or 0
    logger.info(f"[Reports] Removed {removed} reports generated before {cutoff.date()}")
    return removed


# ---------------------- Analytics (not persisted) ----------------------

def _date_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date]:
    end_date = end_date or datetime.utcnow().date()
    start_date = start_date or end_date - timedelta(days=30)
    if start_date > end_date:
        raise InvalidReportRequest("start_date must not be after end_date")
    return start_date, end_date


async def dashboard(session: AsyncSession) -> dict:
    active = Inventory.status == InventoryStatus.active.value
    value_expr = Inventory.stock * Inventory.unit_price

    stats = (await session.execute(
        select(func.count(Inventory.id), func.coalesce(func.sum(value_expr), 0)).where(active)
    )).one()
    low_count = (await session.execute(
        select(func.count(Inventory.id)).where(active, Inventory.stock <= Inventory.reorder_level)
    )).scalar() or 0
    active_reservations = (await session.execute(
        select(func.count(Reservation.id)).where(Reservation.status.in_(ACTIVE_RESERVATION_STATUSES))
    )).scalar() or 0

    recent = await session.execute(
        select(StockTransaction, Inventory)
        .join(Inventory, StockTransaction.item_id == Inventory.item_id)
        .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(10)
    )
    recent_transactions = [
        {
            "id": txn.id,
            "item_id": txn.item_id,
            "transaction_type": txn.transaction_type,
            "quantity": txn.quantity,
            "balance_after": txn.new_stock,
            "reference_number": txn.reference_number,
            "notes": txn.notes,
            "created_by": txn.created_by,
            "created_at": txn.created_at,
            "inventory_item": {
                "id": item.id,
                "item_id": item.item_id,
                "item_name": item.item_name,
                "category": item.category,
            },
        }
        for txn, item in recent.all()
    ]

    category_value = func.coalesce(func.sum(value_expr), 0)
    top_categories = await session.execute(
        select(Inventory.category, func.count(Inventory.id), category_value)
        .where(active)
        .group_by(Inventory.category)
        .order_by(category_value.desc())
        .limit(5)
    )

    return {
        "total_items": stats[0],
        "total_value": _money(stats[1]),
        "low_stock_count": low_count,
        "active_reservations": active_reservations,
        "recent_transactions": recent_transactions,
        "top_categories": [
            {"category": c, "count": n, "value": _money(v)}
            for c, n, v in top_categories.all()
        ],
    }


async def usage_analytics(
    session: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    """Consumption (sales) per item and category over an inclusive date range."""
    start_date, end_date = _date_range(start_date, end_date)
    start, _ = day_bounds(start_date)
    _, end = day_bounds(end_date)

    rows = await _ledger_between(session, start, end)
    sales = [(t, i) for t, i in rows if t.transaction_type == TransactionType.sale.value]

    usage_by_item = []
    for item_id, entry in _group_by_item(sales).items():
        item = entry["item"]
        consumed = sum(abs(t.quantity) for t in entry["transactions"])
        unit_price = float(item.unit_price or 0)
        usage_by_item.append({
            "item_id": item_id,
            "item_name": item.item_name,
            "part_number": item.item_id,
            "description": item.description,
            "category": item.category,
            "consumed": consumed,
            "cost": _money(consumed * unit_price),
            "unit_price": unit_price,
            "transaction_count": len(entry["transactions"]),
        })

    categories: "OrderedDict[str, dict]" = OrderedDict()
    for line in usage_by_item:
        cat = categories.setdefault(line["category"], {
            "category": line["category"], "consumed": 0, "cost": 0.0, "item_count": 0,
        })
        cat["consumed"] += line["consumed"]
        cat["cost"] = _money(cat["cost"] + line["cost"])
        cat["item_count"] += 1

    # Movement per type over physical rows
    transaction_summary = {}
    for txn_type in PHYSICAL_TRANSACTION_TYPES:
        typed = [(t, i) for t, i in rows if t.transaction_type == txn_type]
        if not typed:
            continue
        value = sum(abs(t.quantity) * float(i.unit_price or 0) for t, i in typed)
        transaction_summary[txn_type] = {
            "transaction_count": len(typed),
            "total_quantity": sum(abs(t.quantity) for t, _ in typed),
            "total_value": _money(value),
            "average_transaction_value": _money(value / len(typed)),
        }

    ranked = sorted(usage_by_item, key=lambda line: line["consumed"], reverse=True)
    most_used = ranked[0] if ranked else None

    physical = [(t, i) for t, i in rows if t.transaction_type in PHYSICAL_TRANSACTION_TYPES]
    movement = []
    for item_id, entry in _group_by_item(physical).items():
        item = entry["item"]
        txns = entry["transactions"]
        total_in = sum(t.quantity for t in txns if t.quantity > 0)
        total_out = sum(abs(t.quantity) for t in txns if t.quantity < 0)
        movement.append({
            "item_id": item_id,
            "item_name": item.item_name,
            "category": item.category,
            "total_in": total_in,
            "total_out": total_out,
            "net_movement": total_in - total_out,
            # relative to the stock on hand now
            "turnover_rate": round(total_out / item.stock, 2) if item.stock > 0 else 0,
            "transaction_count": len(txns),
        })
    movement.sort(key=lambda line: line["total_out"], reverse=True)

    return {
        "date_range": {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "days": (end_date - start_date).days + 1,
        },
        "summary": {
            "total_consumed": sum(line["consumed"] for line in usage_by_item),
            "total_cost": _money(sum(line["cost"] for line in usage_by_item)),
            "unique_items_used": len(usage_by_item),
            "most_used_item": {
                "part_number": most_used["part_number"],
                "item_name": most_used["item_name"],
                "consumed": most_used["consumed"],
            } if most_used else None,
            "active_categories": sum(1 for c in categories.values() if c["consumed"] > 0),
        },
        "transaction_summary": transaction_summary,
        "usage_by_item": usage_by_item,
        "category_breakdown": list(categories.values()),
        "top_consumed_items": ranked[:10],
        "top_moving_items": movement[:20],
        "daily_summary": _daily_summary(rows, start_date, end_date),
    }


def _daily_summary(
    rows: list[tuple[StockTransaction, Inventory]],
    start_date: date,
    end_date: date,
) -> list[dict]:
    """One entry per day of the range, quiet days included."""
    days: "OrderedDict[date, dict]" = OrderedDict()
    day = start_date
    while day <= end_date:
        days[day] = {
            "date": day.isoformat(),
            "sales_count": 0,
            "sales_value": 0.0,
            "procurement_count": 0,
            "procurement_value": 0.0,
            "total_transactions": 0,
        }
        day += timedelta(days=1)

    for txn, item in rows:
        entry = days.get(txn.created_at.date())
        if entry is None:
            continue
        entry["total_transactions"] += 1
        value = abs(txn.quantity) * float(item.unit_price or 0)
        if txn.transaction_type == TransactionType.sale.value:
            entry["sales_count"] += 1
            entry["sales_value"] = _money(entry["sales_value"] + value)
        elif txn.transaction_type == TransactionType.procurement.value:
            entry["procurement_count"] += 1
            entry["procurement_value"] = _money(entry["procurement_value"] + value)
    return list(days.values())


async def procurement_analytics(
    session: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    """Procurement per item and supplier over an inclusive date range."""
    start_date, end_date = _date_range(start_date, end_date)
    start, _ = day_bounds(start_date)
    _, end = day_bounds(end_date)

    rows = await _ledger_between(session, start, end, [TransactionType.procurement.value])

    by_item = []
    for item_id, entry in _group_by_item(rows).items():
        item = entry["item"]
        txns = entry["transactions"]
        quantity = sum(t.quantity for t in txns)
        unit_price = float(item.unit_price or 0)
        by_item.append({
            "item_id": item_id,
            "item_name": item.item_name,
            "part_number": item.item_id,
            "description": item.description,
            "category": item.category,
            "supplier": item.supplier,
            "quantity_procured": quantity,
            "cost": _money(quantity * unit_price),
            "unit_price": unit_price,
            "procurement_count": len(txns),
            "average_procurement_size": round(quantity / len(txns), 2),
        })

    suppliers: "OrderedDict[str, dict]" = OrderedDict()
    for line in by_item:
        name = line["supplier"] or "Unknown"
        sup = suppliers.setdefault(name, {
            "supplier": name, "total_quantity": 0, "total_cost": 0.0, "item_count": 0, "procurement_count": 0,
        })
        sup["total_quantity"] += line["quantity_procured"]
        sup["total_cost"] = _money(sup["total_cost"] + line["cost"])
        sup["item_count"] += 1
        sup["procurement_count"] += line["procurement_count"]

    top_supplier = max(suppliers.values(), key=lambda s: s["total_cost"]) if suppliers else None

    return {
        "date_range": {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        },
        "summary": {
            "total_procured": sum(line["quantity_procured"] for line in by_item),
            "total_cost": _money(sum(line["cost"] for line in by_item)),
            "unique_items_procured": len(by_item),
            "total_procurement_orders": len(rows),
            "top_supplier": {
                "name": top_supplier["supplier"],
                "total_cost": top_supplier["total_cost"],
                "item_count": top_supplier["item_count"],
            } if top_supplier else None,
            "supplier_count": len(suppliers),
        },
        "procurement_by_item": by_item,
        "supplier_breakdown": list(suppliers.values()),
        "top_procurement_items": sorted(by_item, key=lambda line: line["quantity_procured"], reverse=True)[:10],
    }
