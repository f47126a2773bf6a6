"""
Pydantic schemas for report generation requests.
"""
import datetime as dt
from typing import Optional, Any
from pydantic import BaseModel, Field


class DailyUsageRequest(BaseModel):
    date: Optional[dt.date] = None


class MonthlyProcurementRequest(BaseModel):
    month: Optional[str] = Field(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")


class ReconciliationRequest(BaseModel):
    date: Optional[dt.date] = None


class ForecastRequest(BaseModel):
    item_id: str = Field(..., min_length=1)
    days: int = Field(30, ge=1, le=365)


class ReportResponse(BaseModel):
    id: int
    report_type: str
    generated_date: dt.datetime
    report_date: dt.date
    data_summary: dict[str, Any]
    forecast_period: Optional[int]
    forecast_value: Optional[float]
    confidence_level: Optional[float]
    generated_by: Optional[str]

    class Config:
        from_attributes = True
