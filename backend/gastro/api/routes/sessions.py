"""Service shifts: one open session per restaurant."""

from typing import Optional

from fastapi import APIRouter, status

from gastro.core.permissions import DiningUser
from gastro.core.rbac import TenantAdmin
from gastro.db.session import DbSession
from gastro.schemas.restaurant import SessionResponse
from gastro.services import closing_service

router = APIRouter()


@router.get("/current", response_model=Optional[SessionResponse])
def get_current_session(db: DbSession, current_user: DiningUser):
    return closing_service.current_session(db, current_user.restaurant_id)


@router.post("/open", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def open_session(db: DbSession, current_user: TenantAdmin):
    return closing_service.open_session(db, current_user.restaurant_id, opened_by=current_user.user_id)


@router.post("/close", response_model=SessionResponse)
def close_session(db: DbSession, current_user: TenantAdmin):
    return closing_service.close_session(db, current_user.restaurant_id, closed_by=current_user.user_id)
