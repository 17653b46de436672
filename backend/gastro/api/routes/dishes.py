"""Menu dishes and their technical sheets."""

import logging
from typing import List

from fastapi import APIRouter, Query, status

from gastro.core.exceptions import BadRequestError
from gastro.core.rbac import TenantAdmin, TenantUser
from gastro.db.session import DbSession
from gastro.models.menu import Dish, TechnicalSheet
from gastro.models.stock import Item
from gastro.schemas.stock import (
    DishAvailability,
    DishCreate,
    DishResponse,
    DishUpdate,
    TechnicalSheetLine,
)
from gastro.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


def _build_sheets(db, restaurant_id: int, lines: List[TechnicalSheetLine]) -> List[TechnicalSheet]:
    item_ids = {line.item_id for line in lines}
    if len(item_ids) != len(lines):
        raise BadRequestError("Each item may appear only once in a technical sheet")
    if item_ids:
        found = {
            row.id
            for row in db.query(Item.id).filter(
                Item.id.in_(item_ids), Item.restaurant_id == restaurant_id
            )
        }
        missing = item_ids - found
        if missing:
            raise BadRequestError(f"Unknown items: {sorted(missing)}")
    return [
        TechnicalSheet(
            restaurant_id=restaurant_id,
            item_id=line.item_id,
            quantity_per_sale=line.quantity_per_sale,
        )
        for line in lines
    ]


@router.get("", response_model=List[DishResponse])
def list_dishes(db: DbSession, current_user: TenantUser):
    return (
        db.query(Dish)
        .filter(Dish.restaurant_id == current_user.restaurant_id)
        .order_by(Dish.name)
        .all()
    )


@router.get("/{dish_id}", response_model=DishResponse)
def get_dish(dish_id: int, db: DbSession, current_user: TenantUser):
    return StockService(db).get_dish(dish_id, current_user.restaurant_id)


@router.post("", response_model=DishResponse, status_code=status.HTTP_201_CREATED)
def create_dish(payload: DishCreate, db: DbSession, current_user: TenantAdmin):
    dish = Dish(
        restaurant_id=current_user.restaurant_id,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        created_by=current_user.user_id,
    )
    dish.sheets = _build_sheets(db, current_user.restaurant_id, payload.sheets)
    db.add(dish)
    db.commit()
    db.refresh(dish)
    logger.info(f"Dish {dish.id} '{dish.name}' created with {len(dish.sheets)} sheet lines")
    return dish


@router.patch("/{dish_id}", response_model=DishResponse)
def update_dish(dish_id: int, payload: DishUpdate, db: DbSession, current_user: TenantAdmin):
    """Update a dish. Sending ``sheets`` replaces the whole technical sheet."""
    dish = StockService(db).get_dish(dish_id, current_user.restaurant_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"sheets"})
    for field, value in changes.items():
        setattr(dish, field, value)
    if payload.sheets is not None:
        dish.sheets = _build_sheets(db, current_user.restaurant_id, payload.sheets)
    db.commit()
    db.refresh(dish)
    return dish


@router.delete("/{dish_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dish(dish_id: int, db: DbSession, current_user: TenantAdmin):
    dish = StockService(db).get_dish(dish_id, current_user.restaurant_id)
    db.delete(dish)
    db.commit()


@router.get("/{dish_id}/availability", response_model=DishAvailability)
def check_availability(
    dish_id: int,
    db: DbSession,
    current_user: TenantUser,
    quantity: int = Query(1, ge=1),
):
    """Whether the stock covers ``quantity`` sales of the dish."""
    service = StockService(db)
    dish = service.get_dish(dish_id, current_user.restaurant_id)
    shortages = service.check_dish(dish, quantity)
    return DishAvailability(
        dish_id=dish.id,
        quantity=quantity,
        available=not shortages,
        shortages=shortages,
    )
