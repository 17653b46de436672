"""Tests for capability flags and the data export handler."""

import csv
import io

import pytest

from gastro.core.exceptions import BadRequestError
from gastro.core.permissions import (
    ALL_PERMISSIONS,
    DASHBOARD,
    INVENTORY_MANAGEMENT,
    KITCHEN,
    has_permission,
    replace_overrides,
    resolve_permissions,
    role_defaults,
)
from gastro.core.rbac import AppRole


class TestResolvePermissions:
    def test_role_defaults(self):
        assert all(role_defaults(AppRole.ADMIN).values())
        assert role_defaults(AppRole.STAFF)[KITCHEN] is False
        assert role_defaults(AppRole.COZINHA)[KITCHEN] is True
        assert role_defaults(AppRole.COZINHA)[DASHBOARD] is False

    def test_unknown_role_gets_staff_defaults(self):
        assert role_defaults("waiter") == role_defaults(AppRole.STAFF)

    def test_overrides_applied_and_unknown_keys_ignored(self):
        resolved = resolve_permissions(AppRole.STAFF, {KITCHEN: True, "teleport": True})
        assert resolved[KITCHEN] is True
        assert "teleport" not in resolved
        assert set(resolved) == set(ALL_PERMISSIONS)

    def test_host_always_allowed(self):
        revoked = {perm: False for perm in ALL_PERMISSIONS}
        assert has_permission(AppRole.HOST, revoked, INVENTORY_MANAGEMENT)
        assert has_permission(AppRole.SUPER_ADMIN, revoked, KITCHEN)

    def test_admin_override_respected(self):
        resolved = resolve_permissions(AppRole.ADMIN, {INVENTORY_MANAGEMENT: False})
        assert not has_permission(AppRole.ADMIN, resolved, INVENTORY_MANAGEMENT)

    def test_defaults_used_without_resolved_map(self):
        assert has_permission(AppRole.STAFF, None, DASHBOARD)
        assert not has_permission(AppRole.STAFF, None, KITCHEN)

    def test_replace_overrides_rejects_unknown(self, db_session, staff_user):
        with pytest.raises(BadRequestError):
            replace_overrides(db_session, staff_user.id, {"teleport": True})


class TestExportData:
    def _export(self, client, headers, category, fmt="json"):
        return client.post(
            "/api/v1/functions/export-data", json={"category": category, "format": fmt}, headers=headers
        )

    def test_users_scoped_to_restaurant(self, client, host_headers, staff_user, other_restaurant):
        response = self._export(client, host_headers, "users")
        assert response.status_code == 200
        body = response.json()
        assert body["category"] == "users"
        emails = {row["email"] for row in body["data"]}
        assert emails == {"host@example.com", "staff@example.com"}

    def test_secrets_export_names_only(self, client, host_headers):
        rows = self._export(client, host_headers, "secrets").json()["data"]
        assert {row["secret_name"] for row in rows} == {"DATABASE_URL", "SECRET_KEY"}
        assert all("value" not in row for row in rows)

    def test_stock_history_csv(self, client, host_headers, staff_headers, tomato):
        client.post(
            f"/api/v1/stock/items/{tomato.id}/withdraw",
            json={"quantity": "1.5", "reason": "waste"},
            headers=staff_headers,
        )
        response = self._export(client, host_headers, "stock_history", fmt="csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "stock_history.csv" in response.headers["content-disposition"]

        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 1
        assert rows[0]["item_name"] == "Tomate"
        assert rows[0]["change"] == "-1.5"
        assert rows[0]["new_stock"] == "8.5"

    def test_unknown_category(self, client, host_headers):
        response = self._export(client, host_headers, "storage")
        assert response.status_code == 400

    def test_admin_cannot_export(self, client, admin_headers):
        assert self._export(client, admin_headers, "users").status_code == 403
