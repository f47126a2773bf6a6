"""
Transaction API Endpoints
Read-only access to the stock ledger.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.db.database import get_db
from partstock.db.enums import TransactionType
from partstock.schemas.inventory import TransactionResponse
from partstock.services.inventory import list_transactions, get_transaction
from partstock.services.reports import day_bounds

router = APIRouter()


@router.get("/")
async def list_stock_transactions(
    item_id: Optional[str] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None, description="Inclusive"),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await list_transactions(
        db,
        item_id=item_id,
        transaction_type=transaction_type.value if transaction_type else None,
        start_date=day_bounds(start_date)[0] if start_date else None,
        end_date=day_bounds(end_date)[1] if end_date else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(TransactionResponse, rows, total, pagination)


@router.get("/{transaction_id}")
async def get_stock_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    transaction = await get_transaction(db, transaction_id)
    return success(serialize(TransactionResponse, transaction))
