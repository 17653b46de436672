"""Export service: tenant data dumps as JSON rows or CSV."""

import csv
import io
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from gastro.core.exceptions import BadRequestError
from gastro.core.formatting import format_quantity, format_quantity_change
from gastro.core.rbac import AuthContext
from gastro.models.stock import Item, StockHistory
from gastro.models.user import Profile, User

logger = logging.getLogger(__name__)

EXPORT_CATEGORIES = ("users", "logs", "functions", "secrets", "stock_history")

# Privileged operations exposed by the API
PRIVILEGED_FUNCTIONS = [
    ("create-restaurant", "Creates a new restaurant with its host owner"),
    ("create-user", "Creates a new user"),
    ("update-user", "Updates a user"),
    ("delete-user", "Deletes a user"),
    ("sync-profile-emails", "Copies account e-mails into profiles"),
    ("export-data", "Exports project data as JSON or CSV"),
]

# Only the names are ever exported
SECRET_NAMES = ["DATABASE_URL", "SECRET_KEY"]


class ExportService:
    """Builds export rows for one category, scoped to the requester's tenant."""

    def __init__(self, db: Session, requester: AuthContext):
        self.db = db
        self.requester = requester

    def export(self, category: str) -> Dict[str, Any]:
        if category not in EXPORT_CATEGORIES:
            raise BadRequestError(f"Unknown category: {category}")
        rows, message = getattr(self, f"_export_{category}")()
        logger.info(f"Export '{category}' by user {self.requester.user_id}: {len(rows)} rows")
        return {"category": category, "data": rows, "message": message}

    def _users_query(self):
        query = self.db.query(User, Profile).outerjoin(Profile, Profile.user_id == User.id)
        if not self.requester.is_super_admin:
            query = query.filter(Profile.restaurant_id == self.requester.restaurant_id)
        return query.order_by(User.id)

    def _export_users(self):
        rows = [
            {
                "id": user.id,
                "email": user.email,
                "full_name": profile.full_name if profile else "",
                "role": user.role.value if user.role else "",
                "restaurant_id": profile.restaurant_id if profile else "",
                "created_at": user.created_at.isoformat() if user.created_at else "",
                "last_sign_in_at": user.last_sign_in_at.isoformat() if user.last_sign_in_at else "",
            }
            for user, profile in self._users_query().all()
        ]
        return rows, f"{len(rows)} users exported"

    def _export_logs(self):
        rows = [
            {
                "user_id": user.id,
                "email": profile.email if profile and profile.email else user.email,
                "full_name": profile.full_name if profile else "",
                "created_at": profile.created_at.isoformat() if profile and profile.created_at else "",
                "type": "profile_activity",
            }
            for user, profile in self._users_query().all()
        ]
        return rows, f"{len(rows)} log entries exported"

    def _export_functions(self):
        rows = [
            {"function_name": name, "status": "deployed", "description": description}
            for name, description in PRIVILEGED_FUNCTIONS
        ]
        return rows, "Functions list exported"

    def _export_secrets(self):
        rows = [
            {
                "secret_name": name,
                "status": "configured",
                "note": "Values are not exported for security reasons",
            }
            for name in SECRET_NAMES
        ]
        return rows, f"{len(rows)} secrets exported (names only)"

    def _export_stock_history(self):
        query = self.db.query(StockHistory, Item.name).join(Item, StockHistory.item_id == Item.id)
        if not self.requester.is_super_admin:
            query = query.filter(StockHistory.restaurant_id == self.requester.restaurant_id)
        rows = []
        for entry, item_name in query.order_by(StockHistory.created_at.desc(), StockHistory.id.desc()).all():
            previous = entry.previous_stock or 0
            rows.append({
                "id": entry.id,
                "item_id": entry.item_id,
                "item_name": item_name,
                "movement_type": entry.movement_type,
                "previous_stock": format_quantity(previous),
                "new_stock": format_quantity(entry.new_stock),
                "change": format_quantity_change(entry.new_stock - previous),
                "reason": entry.reason or "",
                "changed_by": entry.changed_by or "",
                "order_id": entry.order_id or "",
                "created_at": entry.created_at.isoformat() if entry.created_at else "",
            })
        return rows, f"{len(rows)} stock movements exported"


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """Render export rows as CSV with a header taken from the first row."""
    output = io.StringIO()
    if not rows:
        return ""
    writer = csv.DictWriter(output, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()
