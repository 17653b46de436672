"""SQLAlchemy models."""

from gastro.models.user import User, Profile, UserRole, UserPermission
from gastro.models.restaurant import (
    Restaurant,
    RestaurantSettings,
    RestaurantTable,
    TableReservation,
    RestaurantSession,
    BarClosing,
    TableStatus,
    ReservationStatus,
    SessionStatus,
)
from gastro.models.stock import Category, Item, StockHistory, MovementType, WithdrawalReason
from gastro.models.menu import Dish, TechnicalSheet
from gastro.models.order import Order, OrderItem, OrderStatus, OrderItemStatus

__all__ = [
    "User",
    "Profile",
    "UserRole",
    "UserPermission",
    "Restaurant",
    "RestaurantSettings",
    "RestaurantTable",
    "TableReservation",
    "RestaurantSession",
    "BarClosing",
    "TableStatus",
    "ReservationStatus",
    "SessionStatus",
    "Category",
    "Item",
    "StockHistory",
    "MovementType",
    "WithdrawalReason",
    "Dish",
    "TechnicalSheet",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderItemStatus",
]
