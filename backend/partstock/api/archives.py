"""
Archive API Endpoints
Read-only audit trail of inventory, reservation and transaction changes.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.db.database import get_db
from partstock.db.enums import ArchiveEntityType
from partstock.schemas.inventory import ArchiveResponse
from partstock.services.audit import list_archives, get_archive
from partstock.services.reports import day_bounds

router = APIRouter()


@router.get("/")
async def list_archive_entries(
    entity_type: Optional[ArchiveEntityType] = Query(None),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await list_archives(
        db,
        entity_type=entity_type.value if entity_type else None,
        entity_id=entity_id,
        action=action,
        start_date=day_bounds(start_date)[0] if start_date else None,
        end_date=day_bounds(end_date)[1] if end_date else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(ArchiveResponse, rows, total, pagination)


@router.get("/{archive_id}")
async def get_archive_entry(archive_id: int, db: AsyncSession = Depends(get_db)):
    archive = await get_archive(db, archive_id)
    return success(serialize(ArchiveResponse, archive))
