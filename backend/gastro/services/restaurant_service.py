"""Restaurant provisioning: tenant creation and default setup."""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from gastro.core.config import settings
from gastro.core.exceptions import EmailExistsError, InternalError, NotFoundError
from gastro.core.rbac import AppRole
from gastro.core.security import get_password_hash
from gastro.models.restaurant import Restaurant, RestaurantSettings, RestaurantTable, TableStatus
from gastro.models.stock import Category
from gastro.models.user import Profile, User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: Dict[str, List[str]] = {
    "pt-BR": ["Geral", "Bebidas", "Vegetais", "Proteínas", "Laticínios"],
    "es": ["General", "Bebidas", "Vegetales", "Proteínas", "Lácteos"],
    "en": ["General", "Beverages", "Vegetables", "Proteins", "Dairy"],
}


def categories_for_locale(locale: Optional[str]) -> List[str]:
    """Default category names for a locale, falling back to ``es``."""
    return list(DEFAULT_CATEGORIES.get(locale or "", DEFAULT_CATEGORIES["es"]))


def email_taken(db: Session, email: str, exclude_user_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(User.email == email.lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def setup_new_restaurant(
    db: Session,
    restaurant_id: int,
    locale: Optional[str] = None,
    currency: Optional[str] = None,
    iva_rate: Optional[Decimal] = None,
    display_name: Optional[str] = None,
    created_by: Optional[int] = None,
) -> RestaurantSettings:
    """Create the default tables, categories and settings of a new restaurant.

    Does not commit; the caller owns the transaction.
    """
    locale = locale or settings.default_locale
    currency = currency or settings.default_currency

    for number in range(1, settings.default_table_count + 1):
        db.add(RestaurantTable(
            restaurant_id=restaurant_id,
            table_number=number,
            capacity=settings.default_table_capacity,
            status=TableStatus.FREE.value,
        ))

    names = categories_for_locale(locale)
    for name in names:
        db.add(Category(restaurant_id=restaurant_id, name=name, created_by=created_by))

    restaurant_settings = RestaurantSettings(
        restaurant_id=restaurant_id,
        iva_rate=iva_rate if iva_rate is not None else Decimal("0"),
        currency=currency,
        locale=locale,
        restaurant_display_name=display_name,
    )
    db.add(restaurant_settings)
    db.flush()

    logger.info(
        f"Restaurant {restaurant_id} setup complete: {len(names)} categories, "
        f"{settings.default_table_count} tables, settings created"
    )
    return restaurant_settings


def add_user(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: AppRole,
    restaurant_id: Optional[int] = None,
    whatsapp: Optional[str] = None,
) -> User:
    """Insert a user with its profile and role row. Does not commit."""
    user = User(email=email.lower(), password_hash=get_password_hash(password), is_active=True)
    user.profile = Profile(
        full_name=full_name,
        email=email.lower(),
        whatsapp=whatsapp,
        restaurant_id=restaurant_id,
    )
    user.role_assignment = UserRole(role=role)
    db.add(user)
    db.flush()
    return user


def create_restaurant(
    db: Session,
    restaurant_name: str,
    owner_email: str,
    owner_password: str,
    owner_name: str,
    locale: Optional[str] = None,
    currency: Optional[str] = None,
    iva_rate: Optional[Decimal] = None,
) -> Dict[str, int]:
    """Create a restaurant with a host owner and the default setup.

    Everything is one transaction; nothing is left behind on failure.
    """
    if email_taken(db, owner_email):
        raise EmailExistsError("Email already registered")

    try:
        owner = add_user(db, owner_email, owner_password, owner_name, AppRole.HOST)
        restaurant = Restaurant(name=restaurant_name, owner_id=owner.id, status="active")
        db.add(restaurant)
        db.flush()
        owner.profile.restaurant_id = restaurant.id

        setup_new_restaurant(
            db,
            restaurant.id,
            locale=locale,
            currency=currency,
            iva_rate=iva_rate,
            display_name=restaurant_name,
            created_by=owner.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Creating restaurant '{restaurant_name}' failed", exc_info=True)
        raise InternalError("Failed to create restaurant")

    logger.info(f"Restaurant '{restaurant_name}' created with owner {owner_email}")
    return {"restaurant_id": restaurant.id, "owner_id": owner.id}


def get_settings_for(db: Session, restaurant_id: int) -> RestaurantSettings:
    row = db.query(RestaurantSettings).filter(RestaurantSettings.restaurant_id == restaurant_id).first()
    if not row:
        raise NotFoundError("Restaurant settings not found")
    return row
