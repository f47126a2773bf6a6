"""
Inventory API Endpoints
Parts catalogue CRUD and stock movements (procurement, sale, return, damage).
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from partstock.api.common import Pagination, success, serialize, paginated
from partstock.core.logging import inventory_logger
from partstock.core.security import get_actor
from partstock.db.database import get_db
from partstock.schemas.inventory import (
    InventoryCreate,
    InventoryUpdate,
    InventoryResponse,
    StockAdd,
    StockDeduct,
    ReturnDamage,
    StockAdjust,
    TransactionResponse,
)
from partstock.services.inventory import (
    list_inventory,
    get_item,
    available_stock,
    create_item,
    update_item,
    delete_item,
    check_stock_status,
    adjust_stock,
    add_stock,
    deduct_stock,
    log_return_damage,
    low_stock_preview,
    get_inventory_summary,
    forecast_demand,
)

router = APIRouter()


def _movement_payload(result: dict) -> dict:
    return {
        "item": serialize(InventoryResponse, result["item"]),
        "transaction": serialize(TransactionResponse, result["transaction"]),
        "previous_stock": result["previous_stock"],
        "new_stock": result["new_stock"],
        "quantity_changed": result["quantity_changed"],
    }


@router.get("/")
async def list_inventory_items(
    category: Optional[str] = Query(None),
    low_stock: bool = Query(False, description="Only items at or below their reorder level"),
    search: Optional[str] = Query(None, description="Match item name or SKU"),
    include_inactive: bool = Query(False),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """List active inventory items (all statuses with include_inactive)."""
    items, total = await list_inventory(
        db,
        category=category,
        low_stock_only=low_stock,
        search=search,
        include_inactive=include_inactive,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return paginated(InventoryResponse, items, total, pagination)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Create a new part. Initial stock is booked as a procurement."""
    data = payload.model_dump()
    data["status"] = payload.status.value
    item = await create_item(db, data, actor)
    return success(serialize(InventoryResponse, item), "Inventory item created successfully")


@router.get("/summary")
async def inventory_summary(db: AsyncSession = Depends(get_db)):
    """Overview, category breakdown, top items by value and alert counts."""
    return success(await get_inventory_summary(db))


@router.get("/alerts/low-stock")
async def low_stock_alerts(db: AsyncSession = Depends(get_db)):
    """Active low-stock items with urgency. Nothing is persisted."""
    items = await low_stock_preview(db)
    return success({"items": items, "count": len(items)})


@router.post("/add-stock")
async def add_stock_endpoint(
    payload: StockAdd,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Book a procurement."""
    try:
        result = await add_stock(
            db, payload.item_id, payload.quantity, actor,
            reference_number=payload.reference_number, notes=payload.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    inventory_logger.info(
        "Stock added",
        item_id=payload.item_id,
        quantity=payload.quantity,
        actor=actor,
    )
    return success(_movement_payload(result), "Stock added successfully")


@router.post("/deduct-stock")
async def deduct_stock_endpoint(
    payload: StockDeduct,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Book a point-of-sale deduction against available stock."""
    try:
        result = await deduct_stock(
            db, payload.item_id, payload.quantity, payload.reference_number, actor,
            notes=payload.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    inventory_logger.info(
        "Stock deducted",
        item_id=payload.item_id,
        quantity=payload.quantity,
        reference=payload.reference_number,
        actor=actor,
    )
    return success(_movement_payload(result), "Stock deducted successfully")


@router.post("/log-return-damage")
async def log_return_damage_endpoint(
    payload: ReturnDamage,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Returns add stock back; damaged parts are written off."""
    try:
        result = await log_return_damage(
            db, payload.item_id, payload.quantity, payload.type, payload.notes, actor,
            reference_number=payload.reference_number,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    label = "Return" if payload.type == "return" else "Damage"
    return success(_movement_payload(result), f"{label} logged successfully")


@router.get("/{item_id}")
async def get_inventory_item(item_id: str, db: AsyncSession = Depends(get_db)):
    """Get one item with its available and reserved stock."""
    item = await get_item(db, item_id)
    available = await available_stock(db, item)
    data = serialize(InventoryResponse, item)
    data["available_stock"] = available
    data["reserved_stock"] = item.stock - available
    return success(data)


@router.put("/{item_id}")
async def update_inventory_item(
    item_id: str,
    payload: InventoryUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Update descriptive fields. A changed stock value is booked as an adjustment."""
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = payload.status.value
    try:
        item = await update_item(db, item_id, changes, actor)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return success(serialize(InventoryResponse, item), "Inventory item updated successfully")


@router.delete("/{item_id}")
async def delete_inventory_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Delete an item that has no pending or approved reservations."""
    await delete_item(db, item_id, actor)
    inventory_logger.info("Inventory item deleted", item_id=item_id, actor=actor)
    return success(None, "Inventory item deleted successfully")


@router.get("/{item_id}/stock-status")
async def stock_status(
    item_id: str,
    quantity: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Whether `quantity` units can be supplied (Available / Partial / Backorder)."""
    return success(await check_stock_status(db, item_id, quantity))


@router.post("/{item_id}/adjust")
async def adjust_inventory_stock(
    item_id: str,
    payload: StockAdjust,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Signed stock correction. Negative quantities cannot exceed physical stock."""
    try:
        result = await adjust_stock(
            db, item_id, payload.quantity, payload.transaction_type.value, actor,
            reference_number=payload.reference_number, notes=payload.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return success(_movement_payload(result), "Stock adjusted successfully")


@router.get("/{item_id}/forecast")
async def item_forecast(
    item_id: str,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    """Moving-average demand forecast. Use POST /api/reports/forecast to persist it."""
    return success(await forecast_demand(db, item_id, days))
