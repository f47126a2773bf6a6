from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class BulkAcknowledge(BaseModel):
    alert_ids: List[int] = Field(..., min_length=1)


class AlertResponse(BaseModel):
    id: int
    item_id: str
    item_name: str
    current_stock: int
    reorder_level: int
    category: str
    supplier: Optional[str]
    urgency: str
    alert_type: str
    message: Optional[str]
    acknowledged: bool
    acknowledged_by: Optional[str]
    acknowledged_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
