"""
Pydantic schemas for job-order reservations.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class ReservationCreate(BaseModel):
    """Schema for reserving one part for a job order"""
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    job_order_number: str = Field(..., min_length=1, max_length=100)
    requested_by: Optional[str] = Field(None, max_length=100)
    expires_at: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None
    is_urgent: bool = False
    notes: Optional[str] = None


class ReservationLine(BaseModel):
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None


class MultiReservationCreate(BaseModel):
    """Schema for reserving several parts for one job order at once"""
    job_order_number: str = Field(..., min_length=1, max_length=100)
    requested_by: Optional[str] = Field(None, max_length=100)
    expires_at: Optional[datetime] = None
    is_urgent: bool = False
    items: List[ReservationLine] = Field(..., min_length=1)


class ReservationApprove(BaseModel):
    approved_by: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class ReservationReject(BaseModel):
    approved_by: Optional[str] = Field(None, max_length=100)
    notes: str = Field(..., min_length=1)


class ReservationComplete(BaseModel):
    completed_by: Optional[str] = Field(None, max_length=100)
    actual_quantity_used: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None


class ReservationCancel(BaseModel):
    cancelled_by: Optional[str] = Field(None, max_length=100)
    reason: str = Field(..., min_length=1)


class ReservationResponse(BaseModel):
    id: int
    item_id: str
    quantity: int
    status: str
    priority_level: int
    is_urgent: bool
    job_order_number: Optional[str]
    requested_by: str
    approved_by: Optional[str]
    requested_date: datetime
    approved_date: Optional[datetime]
    expires_at: Optional[datetime]
    estimated_completion: Optional[datetime]
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
