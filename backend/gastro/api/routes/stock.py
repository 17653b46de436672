"""Stock routes - categories, items, movements and the audit trail.

Movement flows:
- Withdrawal: WITHDRAWAL movement with a reason (waste, internal use, ...)
- Entry: ENTRY movement for received goods, optional new expiry date
- Count: ENTRY when the count is higher, ADJUSTMENT otherwise
Every movement is pushed to the restaurant's ``/ws/items`` subscribers.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request, status

from gastro.core.exceptions import BadRequestError, NotFoundError
from gastro.core.permissions import InventoryUser, StockEntryUser
from gastro.core.rate_limit import limiter
from gastro.core.rbac import TenantUser
from gastro.core.units import is_known_unit, unit_groups
from gastro.db.session import DbSession
from gastro.models.stock import Category, Item
from gastro.schemas.stock import (
    CategoryCreate,
    CategoryResponse,
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    StockCountRequest,
    StockEntryRequest,
    StockHistoryResponse,
    StockMovementResult,
    WithdrawalRequest,
)
from gastro.services.realtime import publish_item_changes
from gastro.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_units(*units: Optional[str]) -> None:
    for unit in units:
        if unit is not None and not is_known_unit(unit):
            raise BadRequestError(f"Unknown unit: {unit}")


def _check_category(db, restaurant_id: int, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    exists = db.query(Category.id).filter(
        Category.id == category_id, Category.restaurant_id == restaurant_id
    ).first()
    if not exists:
        raise NotFoundError("Category not found")


@router.get("/units")
def list_units():
    """Gastro unit dictionary grouped for pickers."""
    return {"groups": unit_groups()}


# ==================== CATEGORIES ====================


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: DbSession, current_user: TenantUser):
    return (
        db.query(Category)
        .filter(Category.restaurant_id == current_user.restaurant_id)
        .order_by(Category.name)
        .all()
    )


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: DbSession, current_user: InventoryUser):
    category = Category(
        restaurant_id=current_user.restaurant_id,
        name=payload.name,
        created_by=current_user.user_id,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


# ==================== ITEMS ====================


@router.get("/items", response_model=List[ItemResponse])
def list_items(
    db: DbSession,
    current_user: TenantUser,
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    low_stock: bool = False,
):
    query = db.query(Item).filter(Item.restaurant_id == current_user.restaurant_id)
    if category_id is not None:
        query = query.filter(Item.category_id == category_id)
    if search:
        query = query.filter(Item.name.ilike(f"%{search}%"))
    if low_stock:
        query = query.filter(Item.current_stock <= Item.min_stock)
    return query.order_by(Item.name).all()


@router.get("/items/{item_id}", response_model=ItemResponse)
def get_item(item_id: int, db: DbSession, current_user: TenantUser):
    return StockService(db).get_item(item_id, current_user.restaurant_id)


@router.post("/items", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(payload: ItemCreate, db: DbSession, current_user: InventoryUser):
    _check_units(payload.unit, payload.sub_unit, payload.recipe_unit)
    _check_category(db, current_user.restaurant_id, payload.category_id)

    item = Item(
        restaurant_id=current_user.restaurant_id,
        created_by=current_user.user_id,
        **payload.model_dump(),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Item {item.id} '{item.name}' created in restaurant {item.restaurant_id}")
    return item


@router.patch("/items/{item_id}", response_model=ItemResponse)
async def update_item(item_id: int, payload: ItemUpdate, db: DbSession, current_user: InventoryUser):
    """Update item details. Stock levels change only through movements."""
    item = StockService(db).get_item(item_id, current_user.restaurant_id)
    changes = payload.model_dump(exclude_unset=True)
    _check_units(changes.get("unit"), changes.get("sub_unit"), changes.get("recipe_unit"))
    if "category_id" in changes:
        _check_category(db, current_user.restaurant_id, changes["category_id"])

    for field, value in changes.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    await publish_item_changes(current_user.restaurant_id, [item])
    return item


# ==================== MOVEMENTS ====================


@router.post("/items/{item_id}/withdraw", response_model=StockMovementResult)
@limiter.limit("60/minute")
async def withdraw_stock(
    request: Request,
    item_id: int,
    payload: WithdrawalRequest,
    db: DbSession,
    current_user: StockEntryUser,
):
    """Take stock out for waste, internal use, expiry or other reasons."""
    service = StockService(db)
    item = service.get_item(item_id, current_user.restaurant_id)
    result = service.withdraw(
        item,
        payload.quantity,
        payload.reason,
        notes=payload.notes,
        actor_id=current_user.user_id,
    )
    await publish_item_changes(current_user.restaurant_id, [item])
    return result


@router.post("/items/{item_id}/entry", response_model=StockMovementResult)
@limiter.limit("60/minute")
async def receive_stock(
    request: Request,
    item_id: int,
    payload: StockEntryRequest,
    db: DbSession,
    current_user: StockEntryUser,
):
    """Record received goods."""
    service = StockService(db)
    item = service.get_item(item_id, current_user.restaurant_id)
    result = service.receive(
        item,
        payload.quantity,
        expiry_date=payload.expiry_date,
        notes=payload.notes,
        actor_id=current_user.user_id,
    )
    await publish_item_changes(current_user.restaurant_id, [item])
    return result


@router.post("/items/{item_id}/count", response_model=StockMovementResult)
@limiter.limit("60/minute")
async def count_stock(
    request: Request,
    item_id: int,
    payload: StockCountRequest,
    db: DbSession,
    current_user: StockEntryUser,
):
    """Record a physical count of an item."""
    service = StockService(db)
    item = service.get_item(item_id, current_user.restaurant_id)
    result = service.count(
        item,
        payload.counted_stock,
        actor_role=current_user.role,
        expiry_date=payload.expiry_date,
        actor_id=current_user.user_id,
    )
    await publish_item_changes(current_user.restaurant_id, [item])
    return result


# ==================== AUDIT ====================


@router.get("/history", response_model=List[StockHistoryResponse])
def get_stock_history(
    db: DbSession,
    current_user: InventoryUser,
    item_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    limit: int = Query(100, le=500),
    offset: int = Query(0, ge=0),
):
    """Stock movements of the restaurant, newest first."""
    return StockService(db).history(
        current_user.restaurant_id,
        item_id=item_id,
        movement_type=movement_type,
        limit=limit,
        offset=offset,
    )
