"""User listing and permission override routes."""

from typing import List

from fastapi import APIRouter, Request

from gastro.core.exceptions import PermissionDeniedError
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin
from gastro.db.session import DbSession
from gastro.schemas.user import PermissionsResponse, PermissionsUpdate, UserResponse
from gastro.services import user_service

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_users(db: DbSession, current_user: RequireAdmin):
    """Users of the caller's restaurant (all users for super_admin)."""
    return [user_service.user_summary(u) for u in user_service.list_users(db, current_user)]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: DbSession, current_user: CurrentUser):
    if user_id != current_user.user_id and not current_user.is_admin:
        raise PermissionDeniedError("Cannot view other users")
    return user_service.user_summary(user_service.get_managed_user(db, current_user, user_id))


@router.get("/{user_id}/permissions", response_model=PermissionsResponse)
def get_user_permissions(user_id: int, db: DbSession, current_user: RequireAdmin):
    target = user_service.get_managed_user(db, current_user, user_id)
    return PermissionsResponse(
        user_id=target.id,
        role=target.role.value if target.role else None,
        permissions=user_service.get_user_permissions(db, current_user, user_id),
    )


@router.put("/{user_id}/permissions", response_model=PermissionsResponse)
@limiter.limit("30/minute")
def set_user_permissions(
    request: Request,
    user_id: int,
    payload: PermissionsUpdate,
    db: DbSession,
    current_user: RequireAdmin,
):
    """Replace the permission overrides of a user the caller outranks."""
    resolved = user_service.set_user_permissions(db, current_user, user_id, payload.permissions)
    target = user_service.get_managed_user(db, current_user, user_id)
    return PermissionsResponse(
        user_id=target.id,
        role=target.role.value if target.role else None,
        permissions=resolved,
    )
