"""Stock, item and menu schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from gastro.models.stock import WithdrawalReason


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)


class CategoryResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    category_id: Optional[int] = None
    unit: str = "un"
    sub_unit: Optional[str] = None
    recipe_unit: Optional[str] = None
    units_per_package: Decimal = Field(Decimal("1"), gt=0)
    recipe_units_per_consumption: Optional[Decimal] = Field(None, gt=0)
    min_stock: Decimal = Field(Decimal("0"), ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[date] = None


class ItemCreate(ItemBase):
    current_stock: Decimal = Field(Decimal("0"), ge=0)


class ItemUpdate(BaseModel):
    """Editable item fields. Stock changes go through movements."""

    name: Optional[str] = Field(None, min_length=1)
    category_id: Optional[int] = None
    unit: Optional[str] = None
    sub_unit: Optional[str] = None
    recipe_unit: Optional[str] = None
    units_per_package: Optional[Decimal] = Field(None, gt=0)
    recipe_units_per_consumption: Optional[Decimal] = Field(None, gt=0)
    min_stock: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[date] = None


class ItemResponse(BaseModel):
    id: int
    name: str
    category_id: Optional[int] = None
    unit: str
    sub_unit: Optional[str] = None
    recipe_unit: Optional[str] = None
    units_per_package: Decimal
    recipe_units_per_consumption: Optional[Decimal] = None
    current_stock: Decimal
    min_stock: Decimal
    price: Optional[Decimal] = None
    expiry_date: Optional[date] = None
    last_count_date: Optional[date] = None
    is_low_stock: bool

    model_config = {"from_attributes": True}


class WithdrawalRequest(BaseModel):
    """Manual withdrawal. Quantity is validated by the service."""

    quantity: Decimal
    reason: WithdrawalReason
    notes: Optional[str] = None


class StockEntryRequest(BaseModel):
    quantity: Decimal
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class StockCountRequest(BaseModel):
    counted_stock: Decimal
    expiry_date: Optional[date] = None


class StockMovementResult(BaseModel):
    success: bool = True
    item_id: int
    previous_stock: Decimal
    new_stock: Decimal
    is_low_stock: bool


class StockHistoryResponse(BaseModel):
    id: int
    item_id: int
    previous_stock: Optional[Decimal] = None
    new_stock: Decimal
    previous_expiry: Optional[date] = None
    new_expiry: Optional[date] = None
    movement_type: str
    reason: Optional[str] = None
    changed_by: Optional[int] = None
    order_id: Optional[int] = None
    order_item_id: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TechnicalSheetLine(BaseModel):
    item_id: int
    quantity_per_sale: Decimal = Field(..., gt=0)


class TechnicalSheetResponse(BaseModel):
    id: int
    item_id: int
    quantity_per_sale: Decimal

    model_config = {"from_attributes": True}


class DishCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    sheets: List[TechnicalSheetLine] = []


class DishUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    sheets: Optional[List[TechnicalSheetLine]] = None


class DishResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    sheets: List[TechnicalSheetResponse] = []

    model_config = {"from_attributes": True}


class Shortage(BaseModel):
    item_id: int
    item_name: str
    unit: str
    available: float
    needed: float


class DishAvailability(BaseModel):
    dish_id: int
    quantity: int
    available: bool
    shortages: List[Shortage]
