"""Role-Based Access Control (RBAC) utilities.

Roles rank host > admin > staff = cozinha. ``super_admin`` sits outside
the ranking and may manage anyone. Every user-management action goes
through one of the ``check_can_*`` guards below.
"""

from enum import Enum
from typing import Annotated, Optional, Union

from fastapi import Depends, Request

from gastro.core.exceptions import PermissionDeniedError, UnauthorizedError
from gastro.core.security import decode_access_token, extract_bearer_token
from gastro.db.session import DbSession


class AppRole(str, Enum):
    """User roles for RBAC."""

    SUPER_ADMIN = "super_admin"
    HOST = "host"
    ADMIN = "admin"
    STAFF = "staff"
    COZINHA = "cozinha"  # kitchen


# Role hierarchy: host > admin > staff = cozinha
ROLE_HIERARCHY = {
    AppRole.HOST: 3,
    AppRole.ADMIN: 2,
    AppRole.STAFF: 1,
    AppRole.COZINHA: 1,
}

RoleLike = Union[AppRole, str, None]


def coerce_role(role: RoleLike) -> Optional[AppRole]:
    if role is None or isinstance(role, AppRole):
        return role
    try:
        return AppRole(role)
    except ValueError:
        return None


def role_level(role: RoleLike) -> int:
    """Numeric rank of a role; unknown roles and super_admin rank 0."""
    return ROLE_HIERARCHY.get(coerce_role(role), 0)


def is_super_admin(role: RoleLike) -> bool:
    return coerce_role(role) == AppRole.SUPER_ADMIN


def can_manage(requester_role: RoleLike, target_role: RoleLike, is_self: bool = False) -> bool:
    """True when the requester may act on a user holding ``target_role``."""
    if is_super_admin(requester_role):
        return True
    if is_self:
        return True
    return role_level(requester_role) > role_level(target_role)


def check_can_create(requester_role: RoleLike, new_role: RoleLike) -> None:
    """Raise PermissionDeniedError unless the requester may create ``new_role``."""
    new = coerce_role(new_role)
    if is_super_admin(requester_role):
        if new == AppRole.SUPER_ADMIN:
            raise PermissionDeniedError("Cannot create super_admin users")
        return
    if role_level(requester_role) <= 1:
        raise PermissionDeniedError("Staff cannot create users")
    if new == AppRole.SUPER_ADMIN or role_level(requester_role) <= role_level(new):
        if coerce_role(requester_role) == AppRole.ADMIN:
            raise PermissionDeniedError("Admins can only create staff users")
        raise PermissionDeniedError("Hosts can only create admin or staff users")


def check_can_update(
    requester_role: RoleLike,
    target_role: RoleLike,
    new_role: RoleLike = None,
    is_self: bool = False,
) -> None:
    """Raise PermissionDeniedError unless the requester may edit the target.

    Self-edits are allowed for profile fields only; changing one's own role
    is reserved to super_admin.
    """
    if is_super_admin(requester_role):
        return

    if not can_manage(requester_role, target_role, is_self=is_self):
        raise PermissionDeniedError("Cannot manage users at same or higher level")

    new = coerce_role(new_role)
    if new is None:
        return
    if coerce_role(requester_role) == AppRole.ADMIN and new in (AppRole.ADMIN, AppRole.HOST):
        raise PermissionDeniedError("Admin cannot assign admin or host roles")
    if new == coerce_role(target_role):
        return
    if is_self:
        raise PermissionDeniedError("Cannot change your own role")
    if new == AppRole.SUPER_ADMIN or role_level(requester_role) <= role_level(new):
        raise PermissionDeniedError("Cannot assign a role at same or higher level")


def check_can_delete(requester_role: RoleLike, target_role: RoleLike, is_self: bool = False) -> None:
    """Raise PermissionDeniedError unless the requester may delete the target."""
    if is_self:
        raise PermissionDeniedError("Cannot delete yourself")
    if not can_manage(requester_role, target_role):
        raise PermissionDeniedError("You cannot delete this user")


class AuthContext:
    """Signed-in user with role, tenant and the derived role flags.

    Attributes:
        user_id: The user's database ID.
        email: The account e-mail.
        role: The user's role from ``user_roles``.
        restaurant_id: The tenant the user belongs to (None for platform users).
        full_name: Display name from the profile.
    """

    def __init__(self, user_id: int, email: str, role: AppRole,
                 restaurant_id: Optional[int] = None, full_name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.restaurant_id = restaurant_id
        self.full_name = full_name or email.split("@")[0]

    @property
    def is_super_admin(self) -> bool:
        return self.role == AppRole.SUPER_ADMIN

    @property
    def is_host(self) -> bool:
        return self.role in (AppRole.HOST, AppRole.SUPER_ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role in (AppRole.ADMIN, AppRole.HOST, AppRole.SUPER_ADMIN)

    @property
    def is_kitchen(self) -> bool:
        return self.role == AppRole.COZINHA

    def can_access_restaurant(self, restaurant_id: Optional[int]) -> bool:
        """super_admin reaches every tenant; everyone else only their own."""
        if self.is_super_admin:
            return True
        return self.restaurant_id is not None and self.restaurant_id == restaurant_id

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "restaurant_id": self.restaurant_id,
            "is_super_admin": self.is_super_admin,
            "is_host": self.is_host,
            "is_admin": self.is_admin,
            "is_kitchen": self.is_kitchen,
        }


async def get_current_user(request: Request, db: DbSession) -> AuthContext:
    """Resolve the bearer token to an AuthContext.

    The role and tenant come from the database, never from the token.
    """
    from gastro.models.user import User

    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise UnauthorizedError("Missing authorization header")

    payload = decode_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise UnauthorizedError("Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid user session")
    if user.role is None:
        raise PermissionDeniedError("Access denied. Role not found.")

    return AuthContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        restaurant_id=user.restaurant_id,
        full_name=user.profile.full_name if user.profile else "",
    )


def require_role(minimum_role: AppRole):
    """Dependency to require a minimum role level. super_admin always passes."""

    async def role_checker(
        current_user: Annotated[AuthContext, Depends(get_current_user)]
    ) -> AuthContext:
        if current_user.is_super_admin:
            return current_user
        if role_level(current_user.role) < role_level(minimum_role):
            raise PermissionDeniedError(f"Requires role {minimum_role.value} or higher")
        return current_user

    return role_checker


async def require_super_admin(
    current_user: Annotated[AuthContext, Depends(get_current_user)]
) -> AuthContext:
    if not current_user.is_super_admin:
        raise PermissionDeniedError("Only super_admin can perform this action")
    return current_user


async def require_tenant(
    current_user: Annotated[AuthContext, Depends(get_current_user)]
) -> AuthContext:
    """Require the caller to belong to a restaurant."""
    if current_user.restaurant_id is None:
        raise PermissionDeniedError("User is not linked to a restaurant")
    return current_user


def require_tenant_role(minimum_role: AppRole):
    """Like ``require_role`` but the caller must also belong to a restaurant."""

    async def tenant_role_checker(
        current_user: Annotated[AuthContext, Depends(require_role(minimum_role))]
    ) -> AuthContext:
        if current_user.restaurant_id is None:
            raise PermissionDeniedError("User is not linked to a restaurant")
        return current_user

    return tenant_role_checker


# Common role dependencies
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
TenantUser = Annotated[AuthContext, Depends(require_tenant)]
RequireHost = Annotated[AuthContext, Depends(require_role(AppRole.HOST))]
RequireAdmin = Annotated[AuthContext, Depends(require_role(AppRole.ADMIN))]
RequireSuperAdmin = Annotated[AuthContext, Depends(require_super_admin)]
TenantAdmin = Annotated[AuthContext, Depends(require_tenant_role(AppRole.ADMIN))]
TenantHost = Annotated[AuthContext, Depends(require_tenant_role(AppRole.HOST))]
