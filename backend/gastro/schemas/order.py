"""Order, billing, kitchen and offline replay schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class OrderOpen(BaseModel):
    """Open a table order, or a counter order when ``table_id`` is omitted."""

    table_id: Optional[int] = None
    guest_count: Optional[int] = Field(None, ge=1)
    customer_name: Optional[str] = None


class OrderItemAdd(BaseModel):
    dish_id: int
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = None


class OrderClose(BaseModel):
    payment_method: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    dish_id: Optional[int] = None
    dish_name: str
    quantity: int
    unit_price: Decimal
    notes: Optional[str] = None
    status: str
    sent_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    table_id: Optional[int] = None
    waiter_id: Optional[int] = None
    session_id: Optional[int] = None
    customer_name: Optional[str] = None
    guest_count: int
    status: str
    total: Decimal
    payment_method: Optional[str] = None
    client_ref: Optional[str] = None
    opened_at: datetime
    closed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}


class BillLine(BaseModel):
    id: int
    dish_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    formatted_line_total: str
    notes: Optional[str] = None
    status: str


class BillResponse(BaseModel):
    order_id: int
    label: str
    status: str
    guest_count: int
    items: List[BillLine]
    total: Decimal
    formatted_total: str
    currency: str


class KitchenTicket(BaseModel):
    id: int
    order_id: int
    label: str
    dish_name: str
    quantity: int
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None


class OfflineOrderItem(BaseModel):
    dish_id: Optional[int] = None
    dish_name: str
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class OfflineOrderReplay(BaseModel):
    """An order captured by a terminal while offline."""

    id: str = Field(..., min_length=1, max_length=64)
    table_id: Optional[int] = None
    customer_name: Optional[str] = None
    waiter_id: Optional[int] = None
    items: List[OfflineOrderItem] = []
    created_at: Optional[datetime] = None


class OfflineReplayResponse(BaseModel):
    order_id: int
    client_ref: str
    created: bool
