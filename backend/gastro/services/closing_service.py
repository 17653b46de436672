"""Service shifts and bar closing.

Closing the bar is refused while any order is still open. The closing report
covers the orders closed since the current shift started, or since midnight
when no shift is open.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from gastro.core.exceptions import BadRequestError, NotFoundError
from gastro.models.order import Order, OrderItem, OrderStatus
from gastro.models.restaurant import BarClosing, RestaurantSession, RestaurantTable, SessionStatus
from gastro.models.stock import Item
from gastro.models.user import Profile, User

logger = logging.getLogger(__name__)


def _money(value: Optional[Decimal]) -> float:
    return float(value or 0)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ===== SESSIONS =====


def current_session(db: Session, restaurant_id: int) -> Optional[RestaurantSession]:
    return (
        db.query(RestaurantSession)
        .filter(
            RestaurantSession.restaurant_id == restaurant_id,
            RestaurantSession.status == SessionStatus.OPEN.value,
        )
        .order_by(RestaurantSession.start_time.desc())
        .first()
    )


def open_session(db: Session, restaurant_id: int, opened_by: Optional[int]) -> RestaurantSession:
    """Start a shift. Only one may be open per restaurant."""
    if current_session(db, restaurant_id):
        raise BadRequestError("A session is already open")
    session = RestaurantSession(
        restaurant_id=restaurant_id,
        opened_by=opened_by,
        start_time=datetime.now(timezone.utc),
        status=SessionStatus.OPEN.value,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(f"Session {session.id} opened for restaurant {restaurant_id}")
    return session


def close_session(db: Session, restaurant_id: int, closed_by: Optional[int]) -> RestaurantSession:
    session = current_session(db, restaurant_id)
    if not session:
        raise NotFoundError("No open session")
    session.status = SessionStatus.CLOSED.value
    session.end_time = datetime.now(timezone.utc)
    session.closed_by = closed_by
    db.commit()
    db.refresh(session)
    return session


# ===== BAR CLOSING =====


def pending_orders(db: Session, restaurant_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(Order, RestaurantTable.table_number)
        .outerjoin(RestaurantTable, Order.table_id == RestaurantTable.id)
        .filter(Order.restaurant_id == restaurant_id, Order.status == OrderStatus.OPEN.value)
        .order_by(Order.opened_at)
        .all()
    )
    return [
        {
            "id": order.id,
            "table_id": order.table_id,
            "table_number": table_number,
            "customer_name": order.customer_name,
            "total": _money(order.total),
            "waiter_id": order.waiter_id,
            "guest_count": order.guest_count,
        }
        for order, table_number in rows
    ]


def block_reason(pending: List[Dict[str, Any]]) -> Optional[str]:
    """Why the bar cannot close, naming the order when only one is open."""
    if not pending:
        return None
    if len(pending) == 1:
        order = pending[0]
        label = f"Table {order['table_number']}" if order["table_number"] else (order["customer_name"] or "Unknown")
        return f"{label} still has an open order"
    return f"{len(pending)} orders are still open"


def period_start(db: Session, restaurant_id: int) -> datetime:
    session = current_session(db, restaurant_id)
    if session:
        return session.start_time
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


def _closed_orders(db: Session, restaurant_id: int, since: datetime) -> List[Order]:
    return (
        db.query(Order)
        .filter(
            Order.restaurant_id == restaurant_id,
            Order.status == OrderStatus.CLOSED.value,
            Order.closed_at >= since,
        )
        .order_by(Order.closed_at)
        .all()
    )


def _waiter_names(db: Session, waiter_ids) -> Dict[int, str]:
    if not waiter_ids:
        return {}
    rows = (
        db.query(User.id, User.email, Profile.full_name)
        .outerjoin(Profile, Profile.user_id == User.id)
        .filter(User.id.in_(waiter_ids))
        .all()
    )
    return {user_id: full_name or email for user_id, email, full_name in rows}


def closing_report(db: Session, restaurant_id: int) -> Dict[str, Any]:
    """Revenue, sales by waiter, expired stock and consumed products of the period."""
    since = period_start(db, restaurant_id)
    orders = _closed_orders(db, restaurant_id, since)

    total_revenue = sum((order.total or Decimal("0") for order in orders), Decimal("0"))

    by_waiter: "OrderedDict[Optional[int], Dict[str, Any]]" = OrderedDict()
    for order in orders:
        entry = by_waiter.setdefault(order.waiter_id, {"total": Decimal("0"), "orders_count": 0})
        entry["total"] += order.total or Decimal("0")
        entry["orders_count"] += 1
    names = _waiter_names(db, [w for w in by_waiter if w is not None])
    sales_by_waiter = [
        {
            "waiter_id": waiter_id,
            "waiter_name": names.get(waiter_id, "Unknown"),
            "total": _money(data["total"]),
            "orders_count": data["orders_count"],
        }
        for waiter_id, data in by_waiter.items()
    ]

    expired = (
        db.query(Item)
        .filter(
            Item.restaurant_id == restaurant_id,
            Item.expiry_date.isnot(None),
            Item.expiry_date < date.today(),
            Item.current_stock > 0,
        )
        .order_by(Item.expiry_date)
        .all()
    )
    expired_items = [
        {
            "id": item.id,
            "name": item.name,
            "expiry_date": item.expiry_date.isoformat(),
            "quantity": float(item.current_stock),
            "unit": item.unit,
        }
        for item in expired
    ]

    consumed: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    order_ids = [order.id for order in orders]
    if order_ids:
        lines = db.query(OrderItem).filter(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id).all()
        for line in lines:
            entry = consumed.setdefault(line.dish_name, {"quantity": 0, "value": Decimal("0")})
            entry["quantity"] += line.quantity
            entry["value"] += line.line_total
    consumed_products = [
        {"dish_name": name, "quantity": data["quantity"], "total_value": _money(data["value"])}
        for name, data in consumed.items()
    ]

    return {
        "period_start": since,
        "total_revenue": _money(total_revenue),
        "total_orders": len(orders),
        "sales_by_waiter": sales_by_waiter,
        "expired_items": expired_items,
        "consumed_products": consumed_products,
    }


def preview_closing(db: Session, restaurant_id: int) -> Dict[str, Any]:
    pending = pending_orders(db, restaurant_id)
    reason = block_reason(pending)
    return {
        "can_close": reason is None,
        "block_reason": reason,
        "pending_orders": pending,
        "report": closing_report(db, restaurant_id) if reason is None else None,
    }


def close_bar(
    db: Session,
    restaurant_id: int,
    closed_by: Optional[int],
    notes: Optional[str] = None,
) -> BarClosing:
    """Persist the closing report and end the open shift."""
    pending = pending_orders(db, restaurant_id)
    reason = block_reason(pending)
    if reason:
        raise BadRequestError(reason, extra={"pending_orders": pending})

    report = closing_report(db, restaurant_id)
    orders = _closed_orders(db, restaurant_id, report["period_start"])
    orders_summary = [
        {
            "id": order.id,
            "table_id": order.table_id,
            "customer_name": order.customer_name,
            "total": _money(order.total),
            "waiter_id": order.waiter_id,
            "payment_method": order.payment_method,
            "opened_at": _iso(order.opened_at),
            "closed_at": _iso(order.closed_at),
            "items": [
                {"dish_name": i.dish_name, "quantity": i.quantity, "unit_price": _money(i.unit_price)}
                for i in order.items
            ],
        }
        for order in orders
    ]

    now = datetime.now(timezone.utc)
    closing = BarClosing(
        restaurant_id=restaurant_id,
        closed_by=closed_by,
        closed_at=now,
        total_revenue=Decimal(str(report["total_revenue"])),
        total_orders=report["total_orders"],
        sales_by_waiter=report["sales_by_waiter"],
        expired_items=report["expired_items"],
        consumed_products=report["consumed_products"],
        orders_summary=orders_summary,
        notes=notes,
    )
    db.add(closing)

    session = current_session(db, restaurant_id)
    if session:
        session.status = SessionStatus.CLOSED.value
        session.end_time = now
        session.closed_by = closed_by

    db.commit()
    db.refresh(closing)
    logger.info(
        f"Bar closed for restaurant {restaurant_id}: {closing.total_orders} orders, "
        f"revenue {report['total_revenue']:.2f}"
    )
    return closing


def list_closings(db: Session, restaurant_id: int, limit: int = 50) -> List[BarClosing]:
    return (
        db.query(BarClosing)
        .filter(BarClosing.restaurant_id == restaurant_id)
        .order_by(BarClosing.closed_at.desc(), BarClosing.id.desc())
        .limit(limit)
        .all()
    )
