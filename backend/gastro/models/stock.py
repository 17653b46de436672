"""Stock models: categories, items and the stock_history audit trail."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gastro.db.base import Base, TimestampMixin


class MovementType(str, Enum):
    """Kinds of stock_history rows."""

    WITHDRAWAL = "withdrawal"  # Manual withdrawal or POS sale
    ENTRY = "entry"  # Goods received
    ADJUSTMENT = "adjustment"  # Count correction


class WithdrawalReason(str, Enum):
    SALE = "sale"
    WASTE = "waste"
    INTERNAL_USE = "internal_use"
    EXPIRED = "expired"
    OTHER = "other"


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class Item(Base, TimestampMixin):
    """A stocked product, counted in purchase units.

    ``units_per_package`` converts purchase units to consumption units and
    the optional ``recipe_units_per_consumption`` converts those to recipe
    units.
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="un", nullable=False)
    sub_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    recipe_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    units_per_package: Mapped[Decimal] = mapped_column(Numeric(14, 6), default=1, nullable=False)
    recipe_units_per_consumption: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 6), nullable=True)
    current_stock: Mapped[Decimal] = mapped_column(Numeric(14, 6), default=0, nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(14, 6), default=0, nullable=False)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_count_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_counted_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock


class StockHistory(Base):
    """Audit row written alongside every stock mutation."""

    __tablename__ = "stock_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    previous_stock: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 6), nullable=True)
    new_stock: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    previous_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    new_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    movement_type: Mapped[str] = mapped_column(String(20), default=MovementType.ADJUSTMENT.value, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    changed_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    order_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    item: Mapped["Item"] = relationship("Item")
