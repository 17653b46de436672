"""Dining room and counter orders: open, add dishes, bill review, close.

Sending a dish to the kitchen deducts its technical sheet from stock and
pushes the changed items to ``/ws/items`` subscribers.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Request, status

from gastro.core.permissions import DiningUser
from gastro.core.rate_limit import limiter
from gastro.core.rbac import TenantAdmin
from gastro.db.session import DbSession
from gastro.models.user import User
from gastro.schemas.order import (
    BillResponse,
    OfflineOrderReplay,
    OfflineReplayResponse,
    OrderClose,
    OrderItemAdd,
    OrderItemResponse,
    OrderOpen,
    OrderResponse,
)
from gastro.services.order_service import OrderService
from gastro.services.realtime import publish_item_changes

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[OrderResponse])
def list_orders(db: DbSession, current_user: DiningUser, status: Optional[str] = None):
    return OrderService(db).list_orders(current_user.restaurant_id, status=status)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def open_order(payload: OrderOpen, db: DbSession, current_user: DiningUser):
    """Open a table order, or a counter order when no table is given."""
    return OrderService(db).open_order(
        current_user.restaurant_id,
        waiter_id=current_user.user_id,
        table_id=payload.table_id,
        guest_count=payload.guest_count,
        customer_name=payload.customer_name,
    )


@router.post("/offline", response_model=OfflineReplayResponse)
@limiter.limit("120/minute")
def replay_offline_order(
    request: Request,
    payload: OfflineOrderReplay,
    db: DbSession,
    current_user: DiningUser,
):
    """Store an order a terminal captured while offline.

    Replaying the same client reference twice returns the first order.
    """
    waiter_id = current_user.user_id
    if payload.waiter_id is not None and payload.waiter_id != current_user.user_id:
        waiter = db.get(User, payload.waiter_id)
        if waiter is not None and waiter.restaurant_id == current_user.restaurant_id:
            waiter_id = waiter.id

    order, created = OrderService(db).replay_offline(
        current_user.restaurant_id,
        client_ref=payload.id,
        waiter_id=waiter_id,
        items=[line.model_dump() for line in payload.items],
        table_id=payload.table_id,
        customer_name=payload.customer_name,
    )
    return OfflineReplayResponse(order_id=order.id, client_ref=payload.id, created=created)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: DbSession, current_user: DiningUser):
    return OrderService(db).get_order(order_id, current_user.restaurant_id)


@router.post("/{order_id}/items", response_model=OrderItemResponse, status_code=status.HTTP_201_CREATED)
async def add_order_item(order_id: int, payload: OrderItemAdd, db: DbSession, current_user: DiningUser):
    """Send a dish to the kitchen. Fails with the shortage list when stock is short."""
    service = OrderService(db)
    order = service.get_order(order_id, current_user.restaurant_id)
    dish = service.stock.get_dish(payload.dish_id, current_user.restaurant_id)
    order_item, changed = service.add_dish(
        order,
        dish,
        payload.quantity,
        notes=payload.notes,
        actor_id=current_user.user_id,
    )
    await publish_item_changes(current_user.restaurant_id, changed)
    return order_item


@router.delete("/{order_id}/items/{order_item_id}", response_model=OrderResponse)
def remove_order_item(order_id: int, order_item_id: int, db: DbSession, current_user: TenantAdmin):
    service = OrderService(db)
    order = service.get_order(order_id, current_user.restaurant_id)
    return service.remove_item(order, order_item_id)


@router.get("/{order_id}/bill", response_model=BillResponse)
def get_bill(order_id: int, db: DbSession, current_user: DiningUser):
    service = OrderService(db)
    return service.bill(service.get_order(order_id, current_user.restaurant_id))


@router.post("/{order_id}/close", response_model=OrderResponse)
def close_order(order_id: int, payload: OrderClose, db: DbSession, current_user: DiningUser):
    """Close with payment, or cancel an order with nothing to charge."""
    service = OrderService(db)
    order = service.get_order(order_id, current_user.restaurant_id)
    return service.close_order(order, payment_method=payload.payment_method)
