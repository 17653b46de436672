"""Dining room tables and reservations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from gastro.core.exceptions import BadRequestError, NotFoundError
from gastro.models.restaurant import (
    ReservationStatus,
    RestaurantTable,
    TableReservation,
    TableStatus,
)

logger = logging.getLogger(__name__)


def list_tables(db: Session, restaurant_id: int) -> List[RestaurantTable]:
    return (
        db.query(RestaurantTable)
        .filter(RestaurantTable.restaurant_id == restaurant_id)
        .order_by(RestaurantTable.table_number)
        .all()
    )


def get_table(db: Session, restaurant_id: int, table_id: int) -> RestaurantTable:
    table = (
        db.query(RestaurantTable)
        .filter(RestaurantTable.id == table_id, RestaurantTable.restaurant_id == restaurant_id)
        .first()
    )
    if not table:
        raise NotFoundError("Table not found")
    return table


def create_table(db: Session, restaurant_id: int, table_number: int, capacity: int = 4) -> RestaurantTable:
    duplicate = (
        db.query(RestaurantTable)
        .filter(
            RestaurantTable.restaurant_id == restaurant_id,
            RestaurantTable.table_number == table_number,
        )
        .first()
    )
    if duplicate:
        raise BadRequestError(f"Table {table_number} already exists")

    table = RestaurantTable(
        restaurant_id=restaurant_id,
        table_number=table_number,
        capacity=capacity,
        status=TableStatus.FREE.value,
    )
    db.add(table)
    db.commit()
    db.refresh(table)
    return table


def set_table_status(db: Session, table: RestaurantTable, status: TableStatus) -> RestaurantTable:
    """Set a table free or reserved. Occupying a table goes through an order."""
    if status == TableStatus.OCCUPIED:
        raise BadRequestError("Open an order to occupy a table")
    if table.status == TableStatus.OCCUPIED.value and table.current_order_id:
        raise BadRequestError("Close the table's order first")

    table.status = status.value
    table.current_order_id = None
    db.commit()
    db.refresh(table)
    return table


# ===== RESERVATIONS =====


def create_reservation(
    db: Session,
    restaurant_id: int,
    table_id: int,
    customer_name: str,
    reserved_at: datetime,
    party_size: int = 2,
    notes: Optional[str] = None,
    created_by: Optional[int] = None,
) -> TableReservation:
    """Book a table; a free table is marked reserved."""
    if not customer_name or not customer_name.strip():
        raise BadRequestError("Customer name is required")
    if party_size < 1:
        raise BadRequestError("Party size must be at least 1")

    table = get_table(db, restaurant_id, table_id)
    reservation = TableReservation(
        restaurant_id=restaurant_id,
        table_id=table.id,
        customer_name=customer_name.strip(),
        reserved_at=reserved_at,
        party_size=party_size,
        notes=notes,
        status=ReservationStatus.ACTIVE.value,
        created_by=created_by,
    )
    db.add(reservation)
    if table.status == TableStatus.FREE.value:
        table.status = TableStatus.RESERVED.value
    db.commit()
    db.refresh(reservation)
    logger.info(f"Reservation {reservation.id} created for table {table.table_number}")
    return reservation


def list_reservations(
    db: Session,
    restaurant_id: int,
    status: Optional[str] = ReservationStatus.ACTIVE.value,
    table_id: Optional[int] = None,
) -> List[TableReservation]:
    query = db.query(TableReservation).filter(TableReservation.restaurant_id == restaurant_id)
    if status:
        query = query.filter(TableReservation.status == status)
    if table_id is not None:
        query = query.filter(TableReservation.table_id == table_id)
    return query.order_by(TableReservation.reserved_at).all()


def cancel_reservation(db: Session, restaurant_id: int, reservation_id: int) -> TableReservation:
    reservation = (
        db.query(TableReservation)
        .filter(
            TableReservation.id == reservation_id,
            TableReservation.restaurant_id == restaurant_id,
        )
        .first()
    )
    if not reservation:
        raise NotFoundError("Reservation not found")
    if reservation.status != ReservationStatus.ACTIVE.value:
        raise BadRequestError("Reservation is not active")

    reservation.status = ReservationStatus.CANCELLED.value
    table = db.get(RestaurantTable, reservation.table_id)
    if table and table.status == TableStatus.RESERVED.value:
        still_reserved = (
            db.query(TableReservation)
            .filter(
                TableReservation.table_id == table.id,
                TableReservation.status == ReservationStatus.ACTIVE.value,
                TableReservation.id != reservation.id,
            )
            .first()
        )
        if not still_reserved:
            table.status = TableStatus.FREE.value
    db.commit()
    db.refresh(reservation)
    return reservation
