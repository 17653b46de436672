"""Order Service - dining room and counter orders, billing and kitchen flow.

Adding a dish writes the order item, deducts the dish's ingredients and
raises the order total in one transaction. Closing an order with no items or
a zero total cancels it instead.
"""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gastro.core.exceptions import (
    ApiError,
    BadRequestError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
)
from gastro.core.formatting import format_currency
from gastro.models.menu import Dish
from gastro.models.order import Order, OrderItem, OrderItemStatus, OrderStatus
from gastro.models.restaurant import (
    RestaurantSession,
    RestaurantSettings,
    RestaurantTable,
    SessionStatus,
    TableStatus,
)
from gastro.models.stock import Item
from gastro.services.stock_service import StockService

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "card", "pix", "transfer", "other")


def default_counter_name() -> str:
    """``Counter #NNNN`` from the last four digits of the epoch milliseconds."""
    return f"Counter #{str(int(time.time() * 1000))[-4:]}"


class OrderService:
    """Service for orders, order items and billing."""

    def __init__(self, db: Session):
        self.db = db
        self.stock = StockService(db)

    # ===== LOOKUPS =====

    def get_order(self, order_id: int, restaurant_id: Optional[int]) -> Order:
        query = self.db.query(Order).filter(Order.id == order_id)
        if restaurant_id is not None:
            query = query.filter(Order.restaurant_id == restaurant_id)
        order = query.first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_table(self, table_id: int, restaurant_id: Optional[int]) -> RestaurantTable:
        query = self.db.query(RestaurantTable).filter(RestaurantTable.id == table_id)
        if restaurant_id is not None:
            query = query.filter(RestaurantTable.restaurant_id == restaurant_id)
        table = query.first()
        if not table:
            raise NotFoundError("Table not found")
        return table

    def list_orders(self, restaurant_id: int, status: Optional[str] = None) -> List[Order]:
        query = self.db.query(Order).filter(Order.restaurant_id == restaurant_id)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.opened_at.desc(), Order.id.desc()).all()

    def order_label(self, order: Order) -> str:
        if order.table_id:
            table = self.db.get(RestaurantTable, order.table_id)
            return f"Table {table.table_number if table else '?'}"
        return f"Counter - {order.customer_name or 'Counter'}"

    def _open_session_id(self, restaurant_id: int) -> Optional[int]:
        session = (
            self.db.query(RestaurantSession)
            .filter(
                RestaurantSession.restaurant_id == restaurant_id,
                RestaurantSession.status == SessionStatus.OPEN.value,
            )
            .first()
        )
        return session.id if session else None

    # ===== OPEN =====

    def open_order(
        self,
        restaurant_id: int,
        waiter_id: Optional[int],
        table_id: Optional[int] = None,
        guest_count: Optional[int] = None,
        customer_name: Optional[str] = None,
    ) -> Order:
        """Open a table order, or a counter order when no table is given.

        A table that already has an open order gets its guest count updated
        and that order is returned.
        """
        if table_id is not None:
            table = self.get_table(table_id, restaurant_id)
            existing = (
                self.db.query(Order)
                .filter(Order.table_id == table.id, Order.status == OrderStatus.OPEN.value)
                .first()
            )
            if existing:
                if guest_count:
                    existing.guest_count = guest_count
                    self.db.commit()
                return existing

            order = Order(
                restaurant_id=restaurant_id,
                table_id=table.id,
                waiter_id=waiter_id,
                status=OrderStatus.OPEN.value,
                guest_count=guest_count or table.capacity,
                session_id=self._open_session_id(restaurant_id),
            )
            self.db.add(order)
            self.db.flush()
            table.status = TableStatus.OCCUPIED.value
            table.current_order_id = order.id
        else:
            order = Order(
                restaurant_id=restaurant_id,
                waiter_id=waiter_id,
                status=OrderStatus.OPEN.value,
                guest_count=1,
                customer_name=customer_name or default_counter_name(),
                session_id=self._open_session_id(restaurant_id),
            )
            self.db.add(order)

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.id} opened ({self.order_label(order)})")
        return order

    # ===== ITEMS =====

    def add_dish(
        self,
        order: Order,
        dish: Dish,
        quantity: int,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Tuple[OrderItem, List[Item]]:
        """Send ``quantity`` of ``dish`` to the kitchen for ``order``.

        Returns the new order item and the stock items that changed.
        """
        if order.status != OrderStatus.OPEN.value:
            raise BadRequestError("Order is not open")
        if quantity < 1:
            raise BadRequestError("Quantity must be at least 1")

        shortages = self.stock.check_dish(dish, quantity)
        if shortages:
            raise InsufficientStockError(f"Insufficient stock for '{dish.name}'", shortages=shortages)

        try:
            order_item = OrderItem(
                order_id=order.id,
                dish_id=dish.id,
                dish_name=dish.name,
                quantity=quantity,
                unit_price=dish.price,
                notes=notes,
                status=OrderItemStatus.PENDING.value,
                sent_at=datetime.now(timezone.utc),
            )
            self.db.add(order_item)
            self.db.flush()

            changed = self.stock.deduct_for_sale(
                dish,
                quantity,
                order_id=order.id,
                order_item_id=order_item.id,
                order_label=self.order_label(order),
                actor_id=actor_id,
            )
            order.total = (order.total or Decimal("0")) + dish.price * quantity
            self.db.commit()
        except ApiError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Adding dish {dish.id} to order {order.id} failed: {e}", exc_info=True)
            raise InternalError("Could not add item to order")

        self.db.refresh(order_item)
        for item in changed:
            self.db.refresh(item)
        return order_item, changed

    def remove_item(self, order: Order, order_item_id: int) -> Order:
        """Remove an item and lower the total, never below zero. Stock is not returned."""
        if order.status != OrderStatus.OPEN.value:
            raise BadRequestError("Order is not open")
        order_item = next((i for i in order.items if i.id == order_item_id), None)
        if order_item is None:
            raise NotFoundError("Order item not found")

        order.total = max(Decimal("0"), (order.total or Decimal("0")) - order_item.line_total)
        order.items.remove(order_item)
        self.db.commit()
        self.db.refresh(order)
        return order

    # ===== BILLING =====

    def bill(self, order: Order) -> Dict[str, Any]:
        """Bill review: items, total and the total formatted in the restaurant currency."""
        settings_row = (
            self.db.query(RestaurantSettings)
            .filter(RestaurantSettings.restaurant_id == order.restaurant_id)
            .first()
        )
        currency = settings_row.currency if settings_row else None
        total = order.total or Decimal("0")
        return {
            "order_id": order.id,
            "label": self.order_label(order),
            "status": order.status,
            "guest_count": order.guest_count,
            "items": [
                {
                    "id": item.id,
                    "dish_name": item.dish_name,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "line_total": item.line_total,
                    "formatted_line_total": format_currency(item.line_total, currency),
                    "notes": item.notes,
                    "status": item.status,
                }
                for item in order.items
            ],
            "total": total,
            "formatted_total": format_currency(total, currency),
            "currency": currency or "EUR",
        }

    def close_order(self, order: Order, payment_method: Optional[str] = None) -> Order:
        """Close with payment, or cancel when there is nothing to charge."""
        if order.status != OrderStatus.OPEN.value:
            raise BadRequestError("Order is not open")
        if payment_method is not None and payment_method not in PAYMENT_METHODS:
            raise BadRequestError(f"Unknown payment method: {payment_method}")

        now = datetime.now(timezone.utc)
        cancel = not order.items or not order.total
        if cancel:
            order.items.clear()
            order.status = OrderStatus.CANCELLED.value
            order.total = Decimal("0")
        else:
            order.status = OrderStatus.CLOSED.value
            order.payment_method = payment_method
        order.closed_at = now

        if order.table_id:
            table = self.db.get(RestaurantTable, order.table_id)
            if table:
                table.status = TableStatus.FREE.value
                table.current_order_id = None

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.id} {order.status}")
        return order

    # ===== KITCHEN =====

    def kitchen_queue(self, restaurant_id: int) -> List[Dict[str, Any]]:
        """Pending items of open orders, oldest first."""
        rows = (
            self.db.query(OrderItem, Order)
            .join(Order, OrderItem.order_id == Order.id)
            .filter(
                Order.restaurant_id == restaurant_id,
                Order.status == OrderStatus.OPEN.value,
                OrderItem.status == OrderItemStatus.PENDING.value,
            )
            .order_by(OrderItem.sent_at.asc(), OrderItem.id.asc())
            .all()
        )
        return [
            {
                "id": item.id,
                "order_id": order.id,
                "label": self.order_label(order),
                "dish_name": item.dish_name,
                "quantity": item.quantity,
                "notes": item.notes,
                "sent_at": item.sent_at,
            }
            for item, order in rows
        ]

    def mark_ready(self, restaurant_id: int, order_item_id: int) -> OrderItem:
        order_item = (
            self.db.query(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .filter(OrderItem.id == order_item_id, Order.restaurant_id == restaurant_id)
            .first()
        )
        if not order_item:
            raise NotFoundError("Order item not found")
        order_item.status = OrderItemStatus.READY.value
        self.db.commit()
        self.db.refresh(order_item)
        return order_item

    def mark_order_ready(self, order: Order) -> int:
        count = 0
        for item in order.items:
            if item.status == OrderItemStatus.PENDING.value:
                item.status = OrderItemStatus.READY.value
                count += 1
        self.db.commit()
        return count

    # ===== OFFLINE REPLAY =====

    def replay_offline(
        self,
        restaurant_id: int,
        client_ref: str,
        waiter_id: Optional[int],
        items: List[Dict[str, Any]],
        table_id: Optional[int] = None,
        customer_name: Optional[str] = None,
    ) -> Tuple[Order, bool]:
        """Create an order captured while offline.

        Returns ``(order, created)``. A client reference already replayed
        returns the existing order with ``created=False``. Stock is not
        deducted for replayed orders.
        """
        existing = self.db.query(Order).filter(Order.client_ref == client_ref).first()
        if existing:
            if existing.restaurant_id != restaurant_id:
                raise BadRequestError("Client reference already used")
            return existing, False

        if table_id is not None:
            self.get_table(table_id, restaurant_id)

        try:
            order = Order(
                restaurant_id=restaurant_id,
                table_id=table_id,
                waiter_id=waiter_id,
                customer_name=customer_name,
                status=OrderStatus.OPEN.value,
                client_ref=client_ref,
                session_id=self._open_session_id(restaurant_id),
            )
            total = Decimal("0")
            for line in items:
                unit_price = Decimal(str(line.get("unit_price") or 0))
                quantity = int(line.get("quantity") or 1)
                dish_id = line.get("dish_id")
                if dish_id is not None:
                    dish = self.db.get(Dish, dish_id)
                    if dish is None or dish.restaurant_id != restaurant_id:
                        dish_id = None
                order.items.append(
                    OrderItem(
                        dish_id=dish_id,
                        dish_name=line["dish_name"],
                        quantity=quantity,
                        unit_price=unit_price,
                        notes=line.get("notes"),
                        status=OrderItemStatus.PENDING.value,
                        sent_at=datetime.now(timezone.utc),
                    )
                )
                total += unit_price * quantity
            order.total = total
            self.db.add(order)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.db.query(Order).filter(Order.client_ref == client_ref).first()
            if existing:
                return existing, False
            raise InternalError("Could not store offline order")

        self.db.refresh(order)
        logger.info(f"Offline order {client_ref} replayed as order {order.id}")
        return order, True
