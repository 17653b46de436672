"""Dining room tables."""

from typing import List

from fastapi import APIRouter, status

from gastro.core.permissions import DiningUser
from gastro.core.rbac import TenantAdmin
from gastro.db.session import DbSession
from gastro.schemas.restaurant import TableCreate, TableResponse, TableStatusUpdate
from gastro.services import table_service

router = APIRouter()


@router.get("", response_model=List[TableResponse])
def list_tables(db: DbSession, current_user: DiningUser):
    return table_service.list_tables(db, current_user.restaurant_id)


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
def create_table(payload: TableCreate, db: DbSession, current_user: TenantAdmin):
    return table_service.create_table(
        db, current_user.restaurant_id, payload.table_number, capacity=payload.capacity
    )


@router.put("/{table_id}/status", response_model=TableResponse)
def set_table_status(table_id: int, payload: TableStatusUpdate, db: DbSession, current_user: DiningUser):
    table = table_service.get_table(db, current_user.restaurant_id, table_id)
    return table_service.set_table_status(db, table, payload.status)
