"""Table reservations."""

from typing import List, Optional

from fastapi import APIRouter, status

from gastro.core.permissions import DiningUser
from gastro.db.session import DbSession
from gastro.models.restaurant import ReservationStatus
from gastro.schemas.restaurant import ReservationCreate, ReservationResponse
from gastro.services import table_service

router = APIRouter()


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    db: DbSession,
    current_user: DiningUser,
    status: Optional[ReservationStatus] = ReservationStatus.ACTIVE,
    table_id: Optional[int] = None,
):
    return table_service.list_reservations(
        db,
        current_user.restaurant_id,
        status=status.value if status else None,
        table_id=table_id,
    )


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(payload: ReservationCreate, db: DbSession, current_user: DiningUser):
    """Book a table; a free table becomes reserved."""
    return table_service.create_reservation(
        db,
        current_user.restaurant_id,
        table_id=payload.table_id,
        customer_name=payload.customer_name,
        reserved_at=payload.reserved_at,
        party_size=payload.party_size,
        notes=payload.notes,
        created_by=current_user.user_id,
    )


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(reservation_id: int, db: DbSession, current_user: DiningUser):
    return table_service.cancel_reservation(db, current_user.restaurant_id, reservation_id)
