"""Privileged handlers: tenant provisioning, user management and data export.

Every handler validates the bearer token, loads the caller's role from the
database and applies the role hierarchy before touching anything.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from gastro.core.config import settings
from gastro.core.exceptions import BadRequestError
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireHost, RequireSuperAdmin
from gastro.db.session import DbSession
from gastro.schemas.restaurant import CreateRestaurantRequest, CreateRestaurantResponse
from gastro.schemas.user import (
    CreatedUser,
    CreateUserRequest,
    CreateUserResponse,
    DeleteUserRequest,
    SuccessResponse,
    SyncEmailsResponse,
    UpdateUserRequest,
)
from gastro.services import restaurant_service, user_service
from gastro.services.export_service import ExportService, rows_to_csv

logger = logging.getLogger(__name__)

router = APIRouter()


class ExportRequest(BaseModel):
    category: str
    format: Literal["json", "csv"] = "json"


@router.post("/create-restaurant", response_model=CreateRestaurantResponse)
@limiter.limit("10/minute")
def create_restaurant(
    request: Request,
    payload: CreateRestaurantRequest,
    db: DbSession,
    current_user: RequireSuperAdmin,
):
    """Create a restaurant with its host owner and default setup."""
    if len(payload.owner_password) < settings.min_password_length:
        raise BadRequestError(f"Password must be at least {settings.min_password_length} characters")

    result = restaurant_service.create_restaurant(
        db,
        restaurant_name=payload.restaurant_name,
        owner_email=payload.owner_email,
        owner_password=payload.owner_password,
        owner_name=payload.owner_name,
        locale=payload.locale,
        currency=payload.currency,
        iva_rate=payload.iva_rate,
    )
    return CreateRestaurantResponse(**result)


@router.post("/create-user", response_model=CreateUserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def create_user(
    request: Request,
    payload: CreateUserRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a user below the caller in the hierarchy."""
    created = user_service.create_user(
        db,
        current_user,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        whatsapp=payload.whatsapp,
        restaurant_name=payload.restaurant_name,
        locale=payload.locale,
        currency=payload.currency,
        restaurant_id=payload.restaurant_id,
    )
    return CreateUserResponse(user=CreatedUser(**created))


@router.post("/update-user", response_model=SuccessResponse)
@limiter.limit("30/minute")
def update_user(
    request: Request,
    payload: UpdateUserRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    user_service.update_user(
        db,
        current_user,
        payload.user_id,
        full_name=payload.full_name,
        email=payload.email,
        password=payload.password,
        whatsapp=payload.whatsapp,
        role=payload.role,
        fields_set=payload.model_fields_set,
    )
    return SuccessResponse(message="User updated successfully")


@router.post("/delete-user", response_model=SuccessResponse)
@limiter.limit("20/minute")
def delete_user(
    request: Request,
    payload: DeleteUserRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    user_service.delete_user(db, current_user, payload.user_id)
    return SuccessResponse(message="User deleted successfully")


@router.post("/sync-profile-emails", response_model=SyncEmailsResponse)
@limiter.limit("5/minute")
def sync_profile_emails(request: Request, db: DbSession, current_user: RequireHost):
    """Copy account e-mails into profiles."""
    return SyncEmailsResponse(updated=user_service.sync_profile_emails(db, current_user))


@router.post("/export-data")
@limiter.limit("10/minute")
def export_data(
    request: Request,
    payload: ExportRequest,
    db: DbSession,
    current_user: RequireHost,
):
    """Export one data category as JSON rows or a CSV download."""
    result = ExportService(db, current_user).export(payload.category)
    if payload.format == "csv":
        return Response(
            content=rows_to_csv(result["data"]),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f"attachment; filename={payload.category}.csv"},
        )
    return result
