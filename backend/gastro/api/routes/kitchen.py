"""Kitchen display: pending tickets and ready marks."""

from typing import List

from fastapi import APIRouter

from gastro.core.permissions import KitchenUser
from gastro.db.session import DbSession
from gastro.schemas.order import KitchenTicket, OrderItemResponse
from gastro.services.order_service import OrderService

router = APIRouter()


@router.get("/queue", response_model=List[KitchenTicket])
def get_queue(db: DbSession, current_user: KitchenUser):
    """Pending items of open orders, oldest first."""
    return OrderService(db).kitchen_queue(current_user.restaurant_id)


@router.post("/items/{order_item_id}/ready", response_model=OrderItemResponse)
def mark_item_ready(order_item_id: int, db: DbSession, current_user: KitchenUser):
    return OrderService(db).mark_ready(current_user.restaurant_id, order_item_id)


@router.post("/orders/{order_id}/ready")
def mark_order_ready(order_id: int, db: DbSession, current_user: KitchenUser):
    service = OrderService(db)
    order = service.get_order(order_id, current_user.restaurant_id)
    return {"success": True, "order_id": order.id, "updated": service.mark_order_ready(order)}
