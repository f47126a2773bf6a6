"""
Inventory Maintenance

Batch housekeeping run nightly by the scheduler or on demand from the CLI:
- reports: daily usage for yesterday, monthly procurement on the 1st,
  reconciliation for today
- alerts: low-stock scan and low-stock report
- cleanup: retention of reports, archives and acknowledged alerts, plus
  expiry of stale reservations
- metrics: stock totals and the inventory health score
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Dict, Any
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from partstock.core.config import settings
from partstock.core.logging import log_operation, maintenance_logger
from partstock.db.enums import InventoryStatus
from partstock.db.models import Inventory
from partstock.services import alerts as alert_service
from partstock.services import reports as report_service
from partstock.services.audit import cleanup_archives
from partstock.services.reservations import expire_stale

logger = logging.getLogger(__name__)

MAINTENANCE_TYPES = ("all", "reports", "alerts", "cleanup", "metrics")


def months_ago(moment: datetime, months: int) -> datetime:
    """Same day and time `months` earlier, clamped to the month's last day."""
    first = report_service.shift_month(date(moment.year, moment.month, 1), -months)
    last_day = calendar.monthrange(first.year, first.month)[1]
    return moment.replace(year=first.year, month=first.month, day=min(moment.day, last_day))


def health_score(total_items: int, low_stock: int, out_of_stock: int) -> int:
    """
    100 minus 30 points scaled by the low-stock share and 50 points scaled by
    the out-of-stock share, clamped to 0-100. An empty inventory scores 0.
    """
    if total_items == 0:
        return 0
    score = 100 - (low_stock / total_items) * 30 - (out_of_stock / total_items) * 50
    return max(0, min(100, round(score)))


async def generate_reports(session: AsyncSession, today: date) -> Dict[str, Any]:
    generated = {}

    report = await report_service.generate_daily_usage(session, today - timedelta(days=1), automated=True)
    generated["daily_usage"] = report.id

    if today.day == 1:
        previous = report_service.shift_month(date(today.year, today.month, 1), -1)
        report = await report_service.generate_monthly_procurement(
            session, previous.strftime("%Y-%m"), automated=True,
        )
        generated["monthly_procurement"] = report.id

    report = await report_service.generate_reconciliation(session, today, automated=True)
    generated["reconciliation"] = report.id

    logger.info(f"[Maintenance] Reports generated: {', '.join(generated)}")
    return generated


async def check_alerts(session: AsyncSession, today: date) -> Dict[str, Any]:
    scan = await alert_service.generate_low_stock_alerts(session)
    result = dict(scan)
    if scan["total_low_stock_items"]:
        report = await report_service.generate_low_stock_report(session, today, automated=True)
        result["low_stock_report"] = report.id
        logger.warning(f"[Maintenance] {scan['total_low_stock_items']} low stock items")
    else:
        logger.info("[Maintenance] No low stock items found")
    return result


async def cleanup_old_data(session: AsyncSession, now: datetime) -> Dict[str, int]:
    result = {
        "reports_deleted": await report_service.cleanup_reports(
            session, months_ago(now, settings.REPORT_RETENTION_MONTHS),
        ),
        "archives_deleted": await cleanup_archives(
            session, months_ago(now, settings.ARCHIVE_RETENTION_MONTHS),
        ),
        "alerts_deleted": await alert_service.cleanup(session, settings.ALERT_RETENTION_DAYS),
        "reservations_expired": await expire_stale(session),
    }
    logger.info(f"[Maintenance] Cleanup complete: {result}")
    return result


async def stock_metrics(session: AsyncSession) -> Dict[str, Any]:
    active = Inventory.status == InventoryStatus.active.value
    stats = (await session.execute(
        select(
            func.count(Inventory.id),
            func.coalesce(func.sum(Inventory.stock * Inventory.unit_price), 0),
        ).where(active)
    )).one()
    low = (await session.execute(
        select(func.count(Inventory.id)).where(active, Inventory.stock <= Inventory.reorder_level)
    )).scalar() or 0
    out = (await session.execute(
        select(func.count(Inventory.id)).where(active, Inventory.stock == 0)
    )).scalar() or 0

    total_items = stats[0] or 0
    return {
        "total_active_items": total_items,
        "low_stock_items": low,
        "out_of_stock_items": out,
        "total_inventory_value": round(float(stats[1] or 0), 2),
        "health_score": health_score(total_items, low, out),
    }


@log_operation("run_maintenance", maintenance_logger)
async def run_maintenance(
    session: AsyncSession,
    maintenance_type: str = "all",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Run one maintenance type, or all of them in order.

    Args:
        session: Database session
        maintenance_type: all, reports, alerts, cleanup or metrics
        now: Reference time (UTC), defaults to the current time

    Returns:
        dict keyed by step name with each step's result

    Raises:
        ValueError: For an unknown maintenance type
    """
    if maintenance_type not in MAINTENANCE_TYPES:
        raise ValueError(f"Unknown maintenance type: {maintenance_type}")

    now = now or datetime.utcnow()
    today = now.date()
    run_all = maintenance_type == "all"
    results: Dict[str, Any] = {"type": maintenance_type, "started_at": now.isoformat()}

    logger.info(f"[Maintenance] Starting inventory maintenance ({maintenance_type})")

    if run_all or maintenance_type == "reports":
        results["reports"] = await generate_reports(session, today)
    if run_all or maintenance_type == "alerts":
        results["alerts"] = await check_alerts(session, today)
    if run_all or maintenance_type == "cleanup":
        results["cleanup"] = await cleanup_old_data(session, now)
    if run_all or maintenance_type == "metrics":
        results["metrics"] = await stock_metrics(session)

    logger.info("[Maintenance] Inventory maintenance completed")
    return results
