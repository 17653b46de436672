"""Restaurant settings: IVA rate, currency, locale and display name."""

import logging

from fastapi import APIRouter

from gastro.core.exceptions import BadRequestError
from gastro.core.formatting import CURRENCIES
from gastro.core.rbac import TenantHost, TenantUser
from gastro.db.session import DbSession
from gastro.schemas.restaurant import RestaurantSettingsResponse, RestaurantSettingsUpdate
from gastro.services.restaurant_service import DEFAULT_CATEGORIES, get_settings_for

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=RestaurantSettingsResponse)
def get_settings(db: DbSession, current_user: TenantUser):
    return get_settings_for(db, current_user.restaurant_id)


@router.put("/settings", response_model=RestaurantSettingsResponse)
def update_settings(payload: RestaurantSettingsUpdate, db: DbSession, current_user: TenantHost):
    """Update the restaurant's settings. Only the host (or super_admin) may."""
    row = get_settings_for(db, current_user.restaurant_id)
    changes = payload.model_dump(exclude_unset=True)

    currency = changes.get("currency")
    if currency is not None and currency not in CURRENCIES:
        raise BadRequestError(f"Unsupported currency: {currency}")
    locale = changes.get("locale")
    if locale is not None and locale not in DEFAULT_CATEGORIES:
        raise BadRequestError(f"Unsupported locale: {locale}")

    for field, value in changes.items():
        if value is not None or field == "restaurant_display_name":
            setattr(row, field, value)
    db.commit()
    db.refresh(row)
    logger.info(f"Settings of restaurant {current_user.restaurant_id} updated by {current_user.user_id}")
    return row
