"""Stock Service - withdrawals, sale deductions, goods receipt and counts.

Every mutation of ``items.current_stock`` writes a ``stock_history`` row in
the same transaction. If the audit row cannot be written the transaction is
rolled back and the stock stays as it was.

Sale flow:
1. Order item sent (dining room, counter or offline replay)
2. For each technical sheet line of the dish:
   a. needed = calculate_stock_deduction(quantity_per_sale x qty,
      units_per_package, recipe_units_per_consumption)
   b. Validate sufficient stock (all lines before any deduction)
   c. Deduct and write a ``withdrawal`` history row linked to the order item
3. Caller commits together with the order changes
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gastro.core.exceptions import (
    BadRequestError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
)
from gastro.core.formatting import format_quantity
from gastro.core.rbac import AppRole, RoleLike, coerce_role
from gastro.core.units import calculate_stock_deduction
from gastro.models.menu import Dish
from gastro.models.stock import Item, MovementType, StockHistory, WithdrawalReason

logger = logging.getLogger(__name__)

REASON_LABELS = {
    WithdrawalReason.SALE: "Sale",
    WithdrawalReason.WASTE: "Waste",
    WithdrawalReason.INTERNAL_USE: "Internal use",
    WithdrawalReason.EXPIRED: "Expired",
    WithdrawalReason.OTHER: "Other",
}

ENTRY_REASON = "Stock entry"
ADJUSTMENT_REASON = "Stock count adjustment"


def withdrawal_reason_text(reason: WithdrawalReason, notes: Optional[str] = None) -> str:
    """``"<Label>: <notes>"``, or just the label without notes."""
    label = REASON_LABELS[WithdrawalReason(reason)]
    return f"{label}: {notes}" if notes else label


class StockService:
    """Service for item stock movements and their audit trail."""

    def __init__(self, db: Session):
        self.db = db

    # ===== LOOKUPS =====

    def get_item(self, item_id: int, restaurant_id: Optional[int]) -> Item:
        """Fetch an item of the caller's restaurant; foreign items are not found."""
        query = self.db.query(Item).filter(Item.id == item_id)
        if restaurant_id is not None:
            query = query.filter(Item.restaurant_id == restaurant_id)
        item = query.first()
        if not item:
            raise NotFoundError("Item not found")
        return item

    def get_dish(self, dish_id: int, restaurant_id: Optional[int]) -> Dish:
        query = self.db.query(Dish).filter(Dish.id == dish_id)
        if restaurant_id is not None:
            query = query.filter(Dish.restaurant_id == restaurant_id)
        dish = query.first()
        if not dish:
            raise NotFoundError("Dish not found")
        return dish

    # ===== MANUAL WITHDRAWAL =====

    def withdraw(
        self,
        item: Item,
        quantity: Decimal,
        reason: WithdrawalReason,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Take ``quantity`` purchase units out of stock.

        Raises BadRequestError for a non-positive quantity and
        InsufficientStockError when more than the current stock is requested.
        """
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise BadRequestError("Quantity must be greater than zero")

        previous_stock = item.current_stock or Decimal("0")
        if quantity > previous_stock:
            raise InsufficientStockError(
                f"Insufficient stock for '{item.name}'",
                shortages=[self._shortage(item, quantity)],
            )

        new_stock = previous_stock - quantity
        item.current_stock = new_stock
        item.last_count_date = date.today()
        item.last_counted_by = actor_id

        self._commit_movement(
            item,
            previous_stock=previous_stock,
            new_stock=new_stock,
            movement_type=MovementType.WITHDRAWAL,
            reason=withdrawal_reason_text(reason, notes),
            actor_id=actor_id,
        )

        is_low_stock = new_stock <= item.min_stock
        logger.info(
            f"Withdrawal recorded: item={item.id} qty={format_quantity(quantity)} "
            f"reason={WithdrawalReason(reason).value} low_stock={is_low_stock}"
        )
        return {
            "success": True,
            "item_id": item.id,
            "previous_stock": previous_stock,
            "new_stock": new_stock,
            "is_low_stock": is_low_stock,
        }

    # ===== SALES =====

    def needed_for_dish(self, dish: Dish, quantity: int) -> List[Dict[str, Any]]:
        """Purchase units each technical sheet line consumes for ``quantity`` sales."""
        needs = []
        for sheet in dish.sheets:
            item = sheet.item
            if item is None:
                continue
            needed = calculate_stock_deduction(
                Decimal(str(sheet.quantity_per_sale)) * quantity,
                item.units_per_package,
                item.recipe_units_per_consumption,
            )
            needs.append({"item": item, "needed": needed})
        return needs

    def check_dish(self, dish: Dish, quantity: int) -> List[Dict[str, Any]]:
        """List the ingredients short for ``quantity`` sales of ``dish``."""
        shortages = []
        for need in self.needed_for_dish(dish, quantity):
            item = need["item"]
            if need["needed"] > (item.current_stock or 0):
                shortages.append(self._shortage(item, need["needed"]))
        return shortages

    def deduct_for_sale(
        self,
        dish: Dish,
        quantity: int,
        order_id: Optional[int],
        order_item_id: Optional[int],
        order_label: str,
        actor_id: Optional[int] = None,
    ) -> List[Item]:
        """Deduct the ingredients of a sold dish. Does not commit.

        All lines are validated before any stock changes.
        """
        needs = self.needed_for_dish(dish, quantity)
        shortages = [
            self._shortage(need["item"], need["needed"])
            for need in needs
            if need["needed"] > (need["item"].current_stock or 0)
        ]
        if shortages:
            raise InsufficientStockError(f"Insufficient stock for '{dish.name}'", shortages=shortages)

        reason = f"{REASON_LABELS[WithdrawalReason.SALE]}: {dish.name} x{quantity} - {order_label}"
        changed = []
        for need in needs:
            item = need["item"]
            previous_stock = item.current_stock or Decimal("0")
            new_stock = max(Decimal("0"), previous_stock - need["needed"])
            item.current_stock = new_stock
            item.last_count_date = date.today()
            item.last_counted_by = actor_id
            self._record_movement(
                item,
                previous_stock=previous_stock,
                new_stock=new_stock,
                movement_type=MovementType.WITHDRAWAL,
                reason=reason,
                actor_id=actor_id,
                order_id=order_id,
                order_item_id=order_item_id,
            )
            changed.append(item)
        return changed

    # ===== ENTRIES AND COUNTS =====

    def receive(
        self,
        item: Item,
        quantity: Decimal,
        expiry_date: Optional[date] = None,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Add received goods to stock, optionally updating the expiry date."""
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise BadRequestError("Quantity must be greater than zero")

        previous_stock = item.current_stock or Decimal("0")
        previous_expiry = item.expiry_date
        new_stock = previous_stock + quantity
        item.current_stock = new_stock
        if expiry_date is not None:
            item.expiry_date = expiry_date
        item.last_count_date = date.today()
        item.last_counted_by = actor_id

        self._commit_movement(
            item,
            previous_stock=previous_stock,
            new_stock=new_stock,
            movement_type=MovementType.ENTRY,
            reason=f"{ENTRY_REASON}: {notes}" if notes else ENTRY_REASON,
            actor_id=actor_id,
            previous_expiry=previous_expiry,
            new_expiry=item.expiry_date,
        )
        logger.info(f"Stock entry recorded: item={item.id} qty={format_quantity(quantity)}")
        return {
            "success": True,
            "item_id": item.id,
            "previous_stock": previous_stock,
            "new_stock": new_stock,
            "is_low_stock": new_stock <= item.min_stock,
        }

    def count(
        self,
        item: Item,
        counted_stock: Decimal,
        actor_role: RoleLike,
        expiry_date: Optional[date] = None,
        actor_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Record a physical count.

        An increase is written as an ``entry``, anything else as an
        ``adjustment``. Staff and kitchen users may not lower the stock.
        """
        counted_stock = Decimal(str(counted_stock))
        if counted_stock < 0:
            raise BadRequestError("Stock cannot be negative")

        previous_stock = item.current_stock or Decimal("0")
        diff = counted_stock - previous_stock
        if diff < 0 and coerce_role(actor_role) in (AppRole.STAFF, AppRole.COZINHA):
            raise PermissionDeniedError("Staff cannot decrease stock in a count")

        previous_expiry = item.expiry_date
        item.current_stock = counted_stock
        if expiry_date is not None:
            item.expiry_date = expiry_date
        item.last_count_date = date.today()
        item.last_counted_by = actor_id

        self._commit_movement(
            item,
            previous_stock=previous_stock,
            new_stock=counted_stock,
            movement_type=MovementType.ENTRY if diff > 0 else MovementType.ADJUSTMENT,
            reason=ENTRY_REASON if diff > 0 else ADJUSTMENT_REASON,
            actor_id=actor_id,
            previous_expiry=previous_expiry,
            new_expiry=item.expiry_date,
        )
        return {
            "success": True,
            "item_id": item.id,
            "previous_stock": previous_stock,
            "new_stock": counted_stock,
            "is_low_stock": counted_stock <= item.min_stock,
        }

    # ===== HISTORY =====

    def history(
        self,
        restaurant_id: int,
        item_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StockHistory]:
        query = self.db.query(StockHistory).filter(StockHistory.restaurant_id == restaurant_id)
        if item_id is not None:
            query = query.filter(StockHistory.item_id == item_id)
        if movement_type:
            query = query.filter(StockHistory.movement_type == movement_type)
        return (
            query.order_by(StockHistory.created_at.desc(), StockHistory.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    # ===== INTERNALS =====

    def _shortage(self, item: Item, needed: Decimal) -> Dict[str, Any]:
        return {
            "item_id": item.id,
            "item_name": item.name,
            "unit": item.unit,
            "available": float(item.current_stock or 0),
            "needed": float(needed),
        }

    def _record_movement(
        self,
        item: Item,
        previous_stock: Decimal,
        new_stock: Decimal,
        movement_type: MovementType,
        reason: str,
        actor_id: Optional[int],
        previous_expiry: Optional[date] = None,
        new_expiry: Optional[date] = None,
        order_id: Optional[int] = None,
        order_item_id: Optional[int] = None,
    ) -> StockHistory:
        entry = StockHistory(
            restaurant_id=item.restaurant_id,
            item_id=item.id,
            previous_stock=previous_stock,
            new_stock=new_stock,
            previous_expiry=previous_expiry,
            new_expiry=new_expiry,
            movement_type=movement_type.value,
            reason=reason,
            changed_by=actor_id,
            order_id=order_id,
            order_item_id=order_item_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def _commit_movement(self, item: Item, **movement) -> None:
        """Write the audit row and commit together with the stock change."""
        try:
            self._record_movement(item, **movement)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Stock movement rolled back for item {item.id}: {e}", exc_info=True)
            raise InternalError("Could not record stock movement")
        self.db.refresh(item)
