"""Auth routes.

Tokens are issued by the identity platform; this router only exposes the
session context the front end derives its role flags from.
"""

from fastapi import APIRouter

from gastro.core.permissions import effective_permissions
from gastro.core.rbac import CurrentUser
from gastro.db.session import DbSession
from gastro.schemas.user import MeResponse

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def get_me(db: DbSession, current_user: CurrentUser):
    """Current user with role flags and resolved permissions."""
    return MeResponse(
        **current_user.to_dict(),
        permissions=effective_permissions(db, current_user.user_id, current_user.role),
    )
