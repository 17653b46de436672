"""API routes."""

from fastapi import APIRouter

from gastro.api.routes import (
    auth, functions, users, restaurants,
    stock, dishes, orders, kitchen,
    tables, reservations, sessions, closings,
)

api_router = APIRouter()

# Identity and privileged handlers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(functions.router, prefix="/functions", tags=["functions"])
api_router.include_router(users.router, prefix="/users", tags=["users", "permissions"])
api_router.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])

# Inventory and menu
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])
api_router.include_router(dishes.router, prefix="/dishes", tags=["dishes", "menu"])

# Dining room and kitchen
api_router.include_router(orders.router, prefix="/orders", tags=["orders", "pos"])
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])

# Shifts and end of day
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(closings.router, prefix="/closings", tags=["closings"])
