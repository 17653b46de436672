"""Bar closing: end-of-day report and history."""

import logging
from typing import List

from fastapi import APIRouter, Query, status

from gastro.core.permissions import DashboardUser
from gastro.core.rbac import TenantAdmin
from gastro.db.session import DbSession
from gastro.schemas.restaurant import BarClosingResponse, CloseBarRequest, ClosingPreview
from gastro.services import closing_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/preview", response_model=ClosingPreview)
def preview_closing(db: DbSession, current_user: DashboardUser):
    """Whether the bar can close now, with the report it would store."""
    return closing_service.preview_closing(db, current_user.restaurant_id)


@router.post("", response_model=BarClosingResponse, status_code=status.HTTP_201_CREATED)
def close_bar(payload: CloseBarRequest, db: DbSession, current_user: TenantAdmin):
    """Close the bar. Refused while any order is still open."""
    return closing_service.close_bar(
        db, current_user.restaurant_id, closed_by=current_user.user_id, notes=payload.notes
    )


@router.get("", response_model=List[BarClosingResponse])
def list_closings(
    db: DbSession,
    current_user: DashboardUser,
    limit: int = Query(50, ge=1, le=200),
):
    return closing_service.list_closings(db, current_user.restaurant_id, limit=limit)
