"""User management: create, update, delete, e-mail sync and permission overrides.

Each action is guarded by the role hierarchy in ``gastro.core.rbac`` and,
for everyone but super_admin, by the requester's restaurant.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from gastro.core.config import settings
from gastro.core.exceptions import (
    BadRequestError,
    EmailExistsError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
)
from gastro.core.permissions import effective_permissions, replace_overrides
from gastro.core.rbac import (
    AppRole,
    AuthContext,
    can_manage,
    check_can_create,
    check_can_delete,
    check_can_update,
    coerce_role,
)
from gastro.core.security import get_password_hash
from gastro.models.restaurant import Restaurant
from gastro.models.user import Profile, User
from gastro.services.restaurant_service import add_user, email_taken, setup_new_restaurant

logger = logging.getLogger(__name__)


def user_summary(user: User) -> Dict[str, Any]:
    profile = user.profile
    return {
        "id": user.id,
        "email": user.email,
        "full_name": profile.full_name if profile else "",
        "whatsapp": profile.whatsapp if profile else None,
        "role": user.role.value if user.role else None,
        "restaurant_id": user.restaurant_id,
        "is_active": user.is_active,
        "created_at": user.created_at,
        "last_sign_in_at": user.last_sign_in_at,
    }


def _parse_role(role: Optional[str]) -> AppRole:
    parsed = coerce_role(role)
    if parsed is None:
        raise BadRequestError("Invalid role")
    return parsed


def get_managed_user(db: Session, requester: AuthContext, user_id: int) -> User:
    """Load a user the requester can see. Other tenants' users are not found."""
    user = db.get(User, user_id)
    if user is None or user.role is None:
        raise NotFoundError("Target user not found")
    if not requester.can_access_restaurant(user.restaurant_id):
        raise NotFoundError("Target user not found")
    return user


def list_users(db: Session, requester: AuthContext) -> List[User]:
    query = db.query(User).join(Profile, Profile.user_id == User.id)
    if not requester.is_super_admin:
        query = query.filter(Profile.restaurant_id == requester.restaurant_id)
    return query.order_by(User.id).all()


def create_user(
    db: Session,
    requester: AuthContext,
    email: str,
    password: str,
    full_name: str,
    role: str,
    whatsapp: Optional[str] = None,
    restaurant_name: Optional[str] = None,
    locale: Optional[str] = None,
    currency: Optional[str] = None,
    restaurant_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Create a user below the requester in the hierarchy.

    A new host gets a restaurant of its own; any other role joins the
    requester's restaurant (super_admin may name one).
    """
    if not email or not password or not full_name or not role:
        raise BadRequestError("Missing required fields: email, password, full_name, role")
    if len(password) < settings.min_password_length:
        raise BadRequestError(f"Password must be at least {settings.min_password_length} characters")
    new_role = _parse_role(role)

    check_can_create(requester.role, new_role)

    if email_taken(db, email):
        raise EmailExistsError("A user with this email already exists")

    assigned_restaurant_id = requester.restaurant_id
    if requester.is_super_admin and restaurant_id is not None:
        if db.get(Restaurant, restaurant_id) is None:
            raise NotFoundError("Restaurant not found")
        assigned_restaurant_id = restaurant_id

    try:
        user = add_user(db, email, password, full_name, new_role, whatsapp=whatsapp)
        if new_role == AppRole.HOST:
            name = restaurant_name or f"Restaurante de {full_name}"
            restaurant = Restaurant(name=name, owner_id=user.id, status="active")
            db.add(restaurant)
            db.flush()
            setup_new_restaurant(
                db,
                restaurant.id,
                locale=locale,
                currency=currency,
                display_name=name,
                created_by=user.id,
            )
            assigned_restaurant_id = restaurant.id
            logger.info(f"Auto-created restaurant '{name}' for new host {email}")
        user.profile.restaurant_id = assigned_restaurant_id
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Creating user {email} failed", exc_info=True)
        raise InternalError("Failed to create user")

    db.refresh(user)
    logger.info(f"User created successfully with role: {new_role.value}")
    return {
        "id": user.id,
        "email": user.email,
        "full_name": full_name,
        "role": new_role.value,
        "restaurant_id": assigned_restaurant_id,
    }


def update_user(
    db: Session,
    requester: AuthContext,
    user_id: int,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
    whatsapp: Optional[str] = None,
    role: Optional[str] = None,
    fields_set: Optional[set] = None,
) -> User:
    """Update profile fields, credentials and role of a user.

    ``whatsapp`` is only touched when it was sent, so it can be cleared with
    an explicit null.
    """
    target = get_managed_user(db, requester, user_id)
    is_self = target.id == requester.user_id
    new_role = _parse_role(role) if role else None

    check_can_update(requester.role, target.role, new_role, is_self=is_self)

    if password is not None and len(password) < settings.min_password_length:
        raise BadRequestError(f"Password must be at least {settings.min_password_length} characters")
    if email and email_taken(db, email, exclude_user_id=target.id):
        raise EmailExistsError("Email already in use")

    profile = target.profile
    if full_name:
        profile.full_name = full_name
    if whatsapp is not None or "whatsapp" in (fields_set or ()):
        profile.whatsapp = whatsapp
    if email:
        target.email = email.lower()
        profile.email = email.lower()
    if password:
        target.password_hash = get_password_hash(password)
    if new_role and new_role != target.role:
        target.role_assignment.role = new_role

    db.commit()
    db.refresh(target)
    logger.info(f"User {target.id} updated by {requester.user_id}")
    return target


def delete_user(db: Session, requester: AuthContext, user_id: int) -> None:
    """Delete a user with its profile, role and permission rows."""
    target = get_managed_user(db, requester, user_id)
    check_can_delete(requester.role, target.role, is_self=target.id == requester.user_id)

    db.delete(target)
    db.commit()
    logger.info(f"User {user_id} deleted by {requester.user_id}")


def sync_profile_emails(db: Session, requester: AuthContext) -> int:
    """Copy account e-mails into profiles. Hosts only touch their own restaurant."""
    query = db.query(User, Profile).join(Profile, Profile.user_id == User.id)
    if not requester.is_super_admin:
        if requester.restaurant_id is None:
            raise PermissionDeniedError("User is not linked to a restaurant")
        query = query.filter(Profile.restaurant_id == requester.restaurant_id)

    updated = 0
    for user, profile in query.all():
        profile.email = user.email
        updated += 1
    db.commit()
    logger.info(f"Synced {updated} profile emails")
    return updated


def get_user_permissions(db: Session, requester: AuthContext, user_id: int) -> Dict[str, bool]:
    target = get_managed_user(db, requester, user_id)
    return effective_permissions(db, target.id, target.role)


def set_user_permissions(
    db: Session,
    requester: AuthContext,
    user_id: int,
    overrides: Mapping[str, bool],
) -> Dict[str, bool]:
    """Replace a user's permission overrides. Requires outranking the user."""
    target = get_managed_user(db, requester, user_id)
    if not can_manage(requester.role, target.role):
        raise PermissionDeniedError("Cannot manage users at same or higher level")

    replace_overrides(db, target.id, overrides)
    db.commit()
    return effective_permissions(db, target.id, target.role)
