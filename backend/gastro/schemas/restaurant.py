"""Restaurant, table, reservation, session and closing schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from gastro.models.restaurant import TableStatus


class CreateRestaurantRequest(BaseModel):
    restaurant_name: str = Field(..., min_length=1)
    owner_email: EmailStr
    owner_password: str
    owner_name: str = Field(..., min_length=1)
    locale: Optional[str] = None
    currency: Optional[str] = None
    iva_rate: Optional[Decimal] = None


class CreateRestaurantResponse(BaseModel):
    success: bool = True
    restaurant_id: int
    owner_id: int
    message: str = "Restaurant and owner created successfully"


class RestaurantSettingsResponse(BaseModel):
    restaurant_id: int
    iva_rate: Decimal
    currency: str
    locale: str
    restaurant_display_name: Optional[str] = None

    model_config = {"from_attributes": True}


class RestaurantSettingsUpdate(BaseModel):
    iva_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    currency: Optional[str] = None
    locale: Optional[str] = None
    restaurant_display_name: Optional[str] = None


class TableCreate(BaseModel):
    table_number: int = Field(..., ge=1)
    capacity: int = Field(4, ge=1)


class TableStatusUpdate(BaseModel):
    status: TableStatus


class TableResponse(BaseModel):
    id: int
    table_number: int
    capacity: int
    status: str
    current_order_id: Optional[int] = None

    model_config = {"from_attributes": True}


class ReservationCreate(BaseModel):
    table_id: int
    customer_name: str
    reserved_at: datetime
    party_size: int = 2
    notes: Optional[str] = None


class ReservationResponse(BaseModel):
    id: int
    table_id: int
    customer_name: str
    reserved_at: datetime
    party_size: int
    notes: Optional[str] = None
    status: str
    created_by: Optional[int] = None

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    id: int
    opened_by: Optional[int] = None
    closed_by: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str

    model_config = {"from_attributes": True}


class CloseBarRequest(BaseModel):
    notes: Optional[str] = None


class ClosingPreview(BaseModel):
    can_close: bool
    block_reason: Optional[str] = None
    pending_orders: List[Dict[str, Any]]
    report: Optional[Dict[str, Any]] = None


class BarClosingResponse(BaseModel):
    id: int
    closed_by: Optional[int] = None
    closed_at: datetime
    total_revenue: Decimal
    total_orders: int
    sales_by_waiter: List[Dict[str, Any]]
    expired_items: List[Dict[str, Any]]
    consumed_products: List[Dict[str, Any]]
    orders_summary: List[Dict[str, Any]]
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
