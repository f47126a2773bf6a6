"""
Pydantic schemas for inventory items and stock movements.
"""
from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator

from partstock.core.config import settings
from partstock.db.enums import InventoryStatus, TransactionType


# ---------------------- Item Schemas ----------------------

class InventoryCreate(BaseModel):
    """Schema for creating a new inventory item"""
    item_id: str = Field(..., min_length=1, max_length=64)
    item_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    stock: int = Field(0, ge=0)
    reorder_level: int = Field(settings.DEFAULT_REORDER_LEVEL, ge=0)
    unit_price: float = Field(..., ge=0)
    supplier: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    status: InventoryStatus = InventoryStatus.active


class InventoryUpdate(BaseModel):
    """Partial update; the SKU itself cannot be changed"""
    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    stock: Optional[int] = Field(None, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    status: Optional[InventoryStatus] = None
    notes: Optional[str] = None


class InventoryResponse(BaseModel):
    id: int
    item_id: str
    item_name: str
    description: Optional[str]
    category: str
    stock: int
    reorder_level: int
    unit_price: float
    supplier: Optional[str]
    location: Optional[str]
    status: str
    is_low_stock: bool
    total_value: float
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# ---------------------- Stock Movement Schemas ----------------------

class StockAdd(BaseModel):
    """Procurement of new stock"""
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class StockDeduct(BaseModel):
    """Point-of-sale deduction; a receipt reference is mandatory"""
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    reference_number: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None


class ReturnDamage(BaseModel):
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    type: Literal["return", "damage"]
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: str = Field(..., min_length=1)


class StockAdjust(BaseModel):
    """Signed stock correction of any transaction type"""
    quantity: int
    transaction_type: TransactionType = TransactionType.adjustment
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("quantity must not be zero")
        return v

    @field_validator("transaction_type")
    @classmethod
    def not_a_reservation(cls, v: TransactionType) -> TransactionType:
        if v == TransactionType.reservation:
            raise ValueError("reservation holds are created through the reservations API")
        return v


class TransactionResponse(BaseModel):
    id: int
    item_id: str
    transaction_type: str
    quantity: int
    previous_stock: int
    new_stock: int
    reference_number: Optional[str]
    notes: Optional[str]
    created_by: str
    created_at: Optional[datetime]
    impact: str

    class Config:
        from_attributes = True


class ArchiveResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    action: str
    old_data: Optional[dict]
    new_data: Optional[dict]
    user_id: Optional[str]
    reference_number: Optional[str]
    notes: Optional[str]
    archived_date: datetime

    class Config:
        from_attributes = True
