"""Tests for dining room orders, billing, kitchen flow and offline replay."""

import re
from decimal import Decimal

import pytest

from gastro.models.order import Order, OrderStatus
from gastro.models.restaurant import TableStatus
from gastro.models.stock import StockHistory


@pytest.fixture
def table_order(client, staff_headers, table_one):
    response = client.post(
        "/api/v1/orders", json={"table_id": table_one.id, "guest_count": 2}, headers=staff_headers
    )
    assert response.status_code == 201
    return response.json()


def _add(client, headers, order_id, dish_id, quantity=1):
    return client.post(
        f"/api/v1/orders/{order_id}/items",
        json={"dish_id": dish_id, "quantity": quantity},
        headers=headers,
    )


class TestOpenOrder:
    def test_table_order_occupies_table(self, db_session, table_order, table_one, staff_user):
        assert table_order["status"] == "open"
        assert table_order["guest_count"] == 2
        assert table_order["waiter_id"] == staff_user.id

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.OCCUPIED.value
        assert table_one.current_order_id == table_order["id"]

    def test_reopening_table_returns_open_order(self, client, staff_headers, table_order, table_one):
        response = client.post(
            "/api/v1/orders", json={"table_id": table_one.id, "guest_count": 4}, headers=staff_headers
        )
        assert response.status_code == 201
        assert response.json()["id"] == table_order["id"]
        assert response.json()["guest_count"] == 4

    def test_counter_order_gets_default_name(self, client, staff_headers):
        response = client.post("/api/v1/orders", json={}, headers=staff_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["table_id"] is None
        assert re.fullmatch(r"Counter #\d{4}", data["customer_name"])

    def test_unknown_table(self, client, staff_headers):
        response = client.post("/api/v1/orders", json={"table_id": 9999}, headers=staff_headers)
        assert response.status_code == 404

    def test_kitchen_user_lacks_dining_room(self, client, kitchen_headers):
        response = client.post("/api/v1/orders", json={}, headers=kitchen_headers)
        assert response.status_code == 403


class TestAddItems:
    def test_add_dish_deducts_stock_and_raises_total(
        self, client, db_session, staff_headers, table_order, salad, tomato
    ):
        response = _add(client, staff_headers, table_order["id"], salad.id, quantity=2)
        assert response.status_code == 201
        item = response.json()
        assert item["status"] == "pending"
        assert item["sent_at"] is not None

        db_session.refresh(tomato)
        assert tomato.current_stock == Decimal("9.5")

        order = db_session.get(Order, table_order["id"])
        db_session.refresh(order)
        assert order.total == Decimal("17.00")

        entry = db_session.query(StockHistory).filter(StockHistory.item_id == tomato.id).one()
        assert entry.order_id == order.id
        assert entry.order_item_id == item["id"]
        assert entry.reason == "Sale: Ensalada x2 - Table 1"

    def test_shortage_rejects_whole_line(self, client, db_session, staff_headers, table_order, salad, tomato):
        response = _add(client, staff_headers, table_order["id"], salad.id, quantity=50)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "bad_request"
        assert body["shortages"][0]["item_name"] == "Tomate"

        db_session.refresh(tomato)
        assert tomato.current_stock == Decimal("10")
        order = client.get(f"/api/v1/orders/{table_order['id']}", headers=staff_headers).json()
        assert order["items"] == []

    def test_quantity_must_be_positive(self, client, staff_headers, table_order, salad):
        response = _add(client, staff_headers, table_order["id"], salad.id, quantity=0)
        assert response.status_code == 400

    def test_remove_item_admin_only(self, client, db_session, staff_headers, admin_headers, table_order, salad, tomato):
        item = _add(client, staff_headers, table_order["id"], salad.id).json()
        path = f"/api/v1/orders/{table_order['id']}/items/{item['id']}"

        assert client.delete(path, headers=staff_headers).status_code == 403

        response = client.delete(path, headers=admin_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["total"]) == Decimal("0")
        assert response.json()["items"] == []

        # Stock is not given back
        db_session.refresh(tomato)
        assert tomato.current_stock == Decimal("9.75")


class TestBillAndClose:
    def test_bill_formats_restaurant_currency(self, client, staff_headers, table_order, salad):
        _add(client, staff_headers, table_order["id"], salad.id, quantity=2)
        response = client.get(f"/api/v1/orders/{table_order['id']}/bill", headers=staff_headers)
        assert response.status_code == 200
        bill = response.json()
        assert bill["label"] == "Table 1"
        assert bill["formatted_total"] == "17,00 €"
        assert bill["currency"] == "EUR"
        assert bill["items"][0]["formatted_line_total"] == "17,00 €"

    def test_close_with_payment_frees_table(self, client, db_session, staff_headers, table_order, table_one, salad):
        _add(client, staff_headers, table_order["id"], salad.id)
        response = client.post(
            f"/api/v1/orders/{table_order['id']}/close", json={"payment_method": "card"}, headers=staff_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.CLOSED.value
        assert data["payment_method"] == "card"
        assert data["closed_at"] is not None

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.FREE.value
        assert table_one.current_order_id is None

    def test_close_empty_order_cancels(self, client, staff_headers, table_order):
        response = client.post(f"/api/v1/orders/{table_order['id']}/close", json={}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.CANCELLED.value
        assert Decimal(response.json()["total"]) == Decimal("0")

    def test_closed_order_rejects_items(self, client, staff_headers, table_order, salad):
        client.post(f"/api/v1/orders/{table_order['id']}/close", json={}, headers=staff_headers)
        assert _add(client, staff_headers, table_order["id"], salad.id).status_code == 400

    def test_unknown_payment_method(self, client, staff_headers, table_order, salad):
        _add(client, staff_headers, table_order["id"], salad.id)
        response = client.post(
            f"/api/v1/orders/{table_order['id']}/close", json={"payment_method": "bitcoin"}, headers=staff_headers
        )
        assert response.status_code == 400


class TestKitchen:
    def test_queue_and_ready(self, client, staff_headers, kitchen_headers, table_order, salad):
        item = _add(client, staff_headers, table_order["id"], salad.id).json()

        queue = client.get("/api/v1/kitchen/queue", headers=kitchen_headers)
        assert queue.status_code == 200
        assert [t["id"] for t in queue.json()] == [item["id"]]
        assert queue.json()[0]["label"] == "Table 1"

        response = client.post(f"/api/v1/kitchen/items/{item['id']}/ready", headers=kitchen_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "ready"
        assert client.get("/api/v1/kitchen/queue", headers=kitchen_headers).json() == []

    def test_mark_whole_order_ready(self, client, staff_headers, kitchen_headers, table_order, salad):
        _add(client, staff_headers, table_order["id"], salad.id)
        _add(client, staff_headers, table_order["id"], salad.id)
        response = client.post(f"/api/v1/kitchen/orders/{table_order['id']}/ready", headers=kitchen_headers)
        assert response.status_code == 200
        assert response.json()["updated"] == 2

    def test_staff_has_no_kitchen_access(self, client, staff_headers):
        assert client.get("/api/v1/kitchen/queue", headers=staff_headers).status_code == 403


class TestOfflineReplay:
    def _payload(self, dish_id):
        return {
            "id": "offline_1760000000000_abc123xyz",
            "customer_name": "Mesa terraza",
            "items": [
                {"dish_id": dish_id, "dish_name": "Ensalada", "quantity": 2, "unit_price": "8.50"},
                {"dish_name": "Agua", "quantity": 1, "unit_price": "1.50"},
            ],
        }

    def test_replay_creates_order_once(self, client, db_session, staff_headers, salad, tomato):
        payload = self._payload(salad.id)
        first = client.post("/api/v1/orders/offline", json=payload, headers=staff_headers)
        assert first.status_code == 200
        assert first.json()["created"] is True

        second = client.post("/api/v1/orders/offline", json=payload, headers=staff_headers)
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["order_id"] == first.json()["order_id"]

        order = db_session.get(Order, first.json()["order_id"])
        assert order.client_ref == payload["id"]
        assert order.total == Decimal("18.50")
        assert len(order.items) == 2

        # Replayed orders do not deduct stock
        db_session.refresh(tomato)
        assert tomato.current_stock == Decimal("10")

    def test_replay_rejects_foreign_table(self, client, staff_headers, salad, other_restaurant, db_session):
        from gastro.models.restaurant import RestaurantTable

        foreign_table = (
            db_session.query(RestaurantTable)
            .filter(RestaurantTable.restaurant_id == other_restaurant.id)
            .first()
        )
        payload = self._payload(salad.id)
        payload["table_id"] = foreign_table.id
        response = client.post("/api/v1/orders/offline", json=payload, headers=staff_headers)
        assert response.status_code == 404


class TestDishes:
    def test_create_dish_with_sheet(self, client, admin_headers, tomato):
        response = client.post(
            "/api/v1/dishes",
            json={"name": "Gazpacho", "price": "6.00", "sheets": [{"item_id": tomato.id, "quantity_per_sale": 300}]},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["sheets"][0]["item_id"] == tomato.id

    def test_staff_cannot_create_dish(self, client, staff_headers):
        response = client.post("/api/v1/dishes", json={"name": "Gazpacho", "price": 6}, headers=staff_headers)
        assert response.status_code == 403

    def test_sheet_item_must_belong_to_restaurant(self, client, admin_headers):
        response = client.post(
            "/api/v1/dishes",
            json={"name": "Gazpacho", "price": 6, "sheets": [{"item_id": 4242, "quantity_per_sale": 1}]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_availability(self, client, staff_headers, salad):
        ok = client.get(f"/api/v1/dishes/{salad.id}/availability?quantity=40", headers=staff_headers)
        assert ok.json()["available"] is True

        short = client.get(f"/api/v1/dishes/{salad.id}/availability?quantity=41", headers=staff_headers)
        assert short.json()["available"] is False
        assert short.json()["shortages"][0]["item_name"] == "Tomate"
