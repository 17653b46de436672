"""Tests for restaurant provisioning and settings."""

from decimal import Decimal

from gastro.models.restaurant import Restaurant, RestaurantSettings, RestaurantTable
from gastro.models.stock import Category
from gastro.models.user import User


def _payload(**overrides):
    payload = {
        "restaurant_name": "Taberna Sol",
        "owner_email": "sol@example.com",
        "owner_password": "solpass1",
        "owner_name": "Sol Owner",
        "locale": "en",
        "currency": "USD",
    }
    payload.update(overrides)
    return payload


class TestCreateRestaurant:
    def test_super_admin_provisions_restaurant(self, client, db_session, super_admin_headers):
        response = client.post("/api/v1/functions/create-restaurant", json=_payload(), headers=super_admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True

        restaurant = db_session.get(Restaurant, data["restaurant_id"])
        assert restaurant.name == "Taberna Sol"
        assert restaurant.owner_id == data["owner_id"]

        owner = db_session.get(User, data["owner_id"])
        assert owner.role.value == "host"
        assert owner.restaurant_id == restaurant.id

        tables = db_session.query(RestaurantTable).filter_by(restaurant_id=restaurant.id).all()
        assert sorted(t.table_number for t in tables) == [1, 2, 3, 4, 5]
        assert all(t.status == "free" for t in tables)

        names = [c.name for c in db_session.query(Category).filter_by(restaurant_id=restaurant.id)]
        assert "Beverages" in names

        settings_row = db_session.query(RestaurantSettings).filter_by(restaurant_id=restaurant.id).one()
        assert settings_row.currency == "USD"
        assert settings_row.locale == "en"
        assert settings_row.restaurant_display_name == "Taberna Sol"

    def test_defaults_to_spanish_categories(self, client, db_session, super_admin_headers):
        response = client.post(
            "/api/v1/functions/create-restaurant",
            json=_payload(locale=None, currency=None),
            headers=super_admin_headers,
        )
        restaurant_id = response.json()["restaurant_id"]
        names = [c.name for c in db_session.query(Category).filter_by(restaurant_id=restaurant_id)]
        assert "Vegetales" in names

    def test_host_cannot_create_restaurant(self, client, host_headers):
        response = client.post("/api/v1/functions/create-restaurant", json=_payload(), headers=host_headers)
        assert response.status_code == 403

    def test_duplicate_owner_email(self, client, super_admin_headers, restaurant):
        response = client.post(
            "/api/v1/functions/create-restaurant",
            json=_payload(owner_email="host@example.com"),
            headers=super_admin_headers,
        )
        assert response.status_code == 409

    def test_short_password(self, client, super_admin_headers):
        response = client.post(
            "/api/v1/functions/create-restaurant",
            json=_payload(owner_password="123"),
            headers=super_admin_headers,
        )
        assert response.status_code == 400


class TestSettings:
    def test_get_settings(self, client, staff_headers):
        response = client.get("/api/v1/restaurants/settings", headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "EUR"
        assert data["locale"] == "es"
        assert data["restaurant_display_name"] == "Casa Pepe"

    def test_host_updates_settings(self, client, db_session, host_headers, restaurant):
        response = client.put(
            "/api/v1/restaurants/settings",
            json={"iva_rate": "10", "currency": "BRL", "restaurant_display_name": "Casa Pepe Centro"},
            headers=host_headers,
        )
        assert response.status_code == 200
        assert response.json()["currency"] == "BRL"

        row = db_session.query(RestaurantSettings).filter_by(restaurant_id=restaurant.id).one()
        db_session.refresh(row)
        assert row.iva_rate == Decimal("10")
        assert row.locale == "es"

    def test_admin_cannot_update_settings(self, client, admin_headers):
        response = client.put("/api/v1/restaurants/settings", json={"currency": "USD"}, headers=admin_headers)
        assert response.status_code == 403

    def test_unsupported_currency(self, client, host_headers):
        response = client.put("/api/v1/restaurants/settings", json={"currency": "JPY"}, headers=host_headers)
        assert response.status_code == 400

    def test_unsupported_locale(self, client, host_headers):
        response = client.put("/api/v1/restaurants/settings", json={"locale": "fr"}, headers=host_headers)
        assert response.status_code == 400

    def test_bill_uses_updated_currency(self, client, host_headers, staff_headers, table_one, salad):
        client.put("/api/v1/restaurants/settings", json={"currency": "USD"}, headers=host_headers)
        order = client.post("/api/v1/orders", json={"table_id": table_one.id}, headers=staff_headers).json()
        client.post(
            f"/api/v1/orders/{order['id']}/items", json={"dish_id": salad.id, "quantity": 1}, headers=staff_headers
        )
        bill = client.get(f"/api/v1/orders/{order['id']}/bill", headers=staff_headers).json()
        assert bill["formatted_total"] == "$8.50"
