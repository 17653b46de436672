"""Menu models: dishes and their technical sheets (recipes)."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gastro.db.base import Base, TimestampMixin


class Dish(Base, TimestampMixin):
    __tablename__ = "dishes"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    sheets: Mapped[List["TechnicalSheet"]] = relationship(
        "TechnicalSheet", back_populates="dish", cascade="all, delete-orphan"
    )


class TechnicalSheet(Base, TimestampMixin):
    """How many recipe units of an item one sale of a dish consumes."""

    __tablename__ = "technical_sheets"

    id: Mapped[int] = mapped_column(primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dish_id: Mapped[int] = mapped_column(
        ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_per_sale: Mapped[Decimal] = mapped_column(Numeric(14, 6), default=1, nullable=False)

    dish: Mapped["Dish"] = relationship("Dish", back_populates="sheets")
    item: Mapped["Item"] = relationship("Item")


from gastro.models.stock import Item
