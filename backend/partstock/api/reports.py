"""
Report API Endpoints
Generates persisted reports and serves non-persisted analytics.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.core.logging import reports_logger
from partstock.core.security import get_actor
from partstock.db.database import get_db
from partstock.db.enums import ReportType
from partstock.schemas.reports import (
    DailyUsageRequest,
    MonthlyProcurementRequest,
    ReconciliationRequest,
    ForecastRequest,
    ReportResponse,
)
from partstock.services import reports as report_service

router = APIRouter()


@router.get("/")
async def list_reports(
    report_type: Optional[ReportType] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    reports, total = await report_service.list_reports(
        db,
        report_type=report_type.value if report_type else None,
        start_date=start_date,
        end_date=end_date,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(ReportResponse, reports, total, pagination)


# ---------------------- Analytics ----------------------

@router.get("/analytics/dashboard")
async def analytics_dashboard(db: AsyncSession = Depends(get_db)):
    return success(await report_service.dashboard(db))


@router.get("/analytics/usage")
async def analytics_usage(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Sales consumption per item and category. Defaults to the last 30 days."""
    return success(await report_service.usage_analytics(db, start_date, end_date))


@router.get("/analytics/procurement")
async def analytics_procurement(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Procurement per item and supplier. Defaults to the last 30 days."""
    return success(await report_service.procurement_analytics(db, start_date, end_date))


@router.get("/{report_id}")
async def get_report(report_id: int, db: AsyncSession = Depends(get_db)):
    report = await report_service.get_report(db, report_id)
    return success(serialize(ReportResponse, report))


# ---------------------- Generation ----------------------

@router.post("/daily-usage", status_code=201)
async def generate_daily_usage(
    payload: Optional[DailyUsageRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    payload = payload or DailyUsageRequest()
    report = await report_service.generate_daily_usage(db, payload.date, actor)
    reports_logger.info("Daily usage report generated", report_id=report.id, actor=actor)
    return success(serialize(ReportResponse, report), "Daily usage report generated successfully")


@router.post("/monthly-procurement", status_code=201)
async def generate_monthly_procurement(
    payload: Optional[MonthlyProcurementRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    payload = payload or MonthlyProcurementRequest()
    report = await report_service.generate_monthly_procurement(db, payload.month, actor)
    reports_logger.info("Monthly procurement report generated", report_id=report.id, actor=actor)
    return success(serialize(ReportResponse, report), "Monthly procurement report generated successfully")


@router.post("/reconciliation", status_code=201)
async def generate_reconciliation(
    payload: Optional[ReconciliationRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    payload = payload or ReconciliationRequest()
    report = await report_service.generate_reconciliation(db, payload.date, actor)
    reports_logger.info("Reconciliation report generated", report_id=report.id, actor=actor)
    return success(serialize(ReportResponse, report), "Reconciliation report generated successfully")


@router.post("/forecast", status_code=201)
async def generate_forecast(
    payload: ForecastRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    report = await report_service.generate_forecast(db, payload.item_id, payload.days, actor)
    return success(serialize(ReportResponse, report), "Forecast generated successfully")
