"""Capability flags resolved from role defaults and per-user overrides."""

from typing import Annotated, Dict, Mapping, Optional, Tuple

from fastapi import Depends

from gastro.core.exceptions import BadRequestError, PermissionDeniedError
from gastro.core.rbac import AppRole, AuthContext, RoleLike, coerce_role, require_tenant
from gastro.db.session import DbSession

DINING_ROOM = "dining_room"
KITCHEN = "kitchen"
STOCK_ENTRY = "stock_entry"
INVENTORY_MANAGEMENT = "inventory_management"
DASHBOARD = "dashboard"

ALL_PERMISSIONS: Tuple[str, ...] = (
    DINING_ROOM,
    KITCHEN,
    STOCK_ENTRY,
    INVENTORY_MANAGEMENT,
    DASHBOARD,
)

_FULL_ACCESS = {perm: True for perm in ALL_PERMISSIONS}

ROLE_DEFAULTS: Dict[AppRole, Dict[str, bool]] = {
    AppRole.HOST: dict(_FULL_ACCESS),
    AppRole.ADMIN: dict(_FULL_ACCESS),
    AppRole.STAFF: {
        DINING_ROOM: True,
        KITCHEN: False,
        STOCK_ENTRY: True,
        INVENTORY_MANAGEMENT: False,
        DASHBOARD: True,
    },
    AppRole.COZINHA: {
        DINING_ROOM: False,
        KITCHEN: True,
        STOCK_ENTRY: True,
        INVENTORY_MANAGEMENT: False,
        DASHBOARD: False,
    },
}


def role_defaults(role: RoleLike) -> Dict[str, bool]:
    """Defaults for a role. Unknown roles get the staff defaults."""
    return dict(ROLE_DEFAULTS.get(coerce_role(role), ROLE_DEFAULTS[AppRole.STAFF]))


def resolve_permissions(role: RoleLike, overrides: Optional[Mapping[str, bool]] = None) -> Dict[str, bool]:
    """Overlay per-user overrides on the role defaults. Unknown keys are ignored."""
    merged = role_defaults(role)
    for key, granted in (overrides or {}).items():
        if key in merged:
            merged[key] = bool(granted)
    return merged


def has_permission(role: RoleLike, resolved: Optional[Mapping[str, bool]], permission: str) -> bool:
    # Host and super_admin always have every capability
    if coerce_role(role) in (AppRole.HOST, AppRole.SUPER_ADMIN):
        return True
    if resolved is None:
        resolved = role_defaults(role)
    return resolved.get(permission, True)


def load_overrides(db, user_id: int) -> Dict[str, bool]:
    from gastro.models.user import UserPermission

    rows = db.query(UserPermission).filter(UserPermission.user_id == user_id).all()
    return {row.permission: row.granted for row in rows}


def effective_permissions(db, user_id: int, role: RoleLike) -> Dict[str, bool]:
    return resolve_permissions(role, load_overrides(db, user_id))


def replace_overrides(db, user_id: int, overrides: Mapping[str, bool]) -> None:
    """Replace the override rows of a user. Caller commits."""
    from gastro.models.user import UserPermission

    unknown = sorted(set(overrides) - set(ALL_PERMISSIONS))
    if unknown:
        raise BadRequestError(f"Unknown permissions: {', '.join(unknown)}")

    db.query(UserPermission).filter(UserPermission.user_id == user_id).delete()
    for key, granted in overrides.items():
        db.add(UserPermission(user_id=user_id, permission=key, granted=bool(granted)))


def require_permission(permission: str):
    """Dependency that denies tenant users lacking ``permission``."""

    async def permission_checker(
        db: DbSession,
        current_user: Annotated[AuthContext, Depends(require_tenant)],
    ) -> AuthContext:
        resolved = effective_permissions(db, current_user.user_id, current_user.role)
        if not has_permission(current_user.role, resolved, permission):
            raise PermissionDeniedError(f"Missing permission: {permission}")
        return current_user

    return permission_checker


DiningUser = Annotated[AuthContext, Depends(require_permission(DINING_ROOM))]
KitchenUser = Annotated[AuthContext, Depends(require_permission(KITCHEN))]
StockEntryUser = Annotated[AuthContext, Depends(require_permission(STOCK_ENTRY))]
InventoryUser = Annotated[AuthContext, Depends(require_permission(INVENTORY_MANAGEMENT))]
DashboardUser = Annotated[AuthContext, Depends(require_permission(DASHBOARD))]
