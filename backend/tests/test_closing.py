"""Tests for service sessions and bar closing."""

import pytest

from gastro.models.restaurant import BarClosing, RestaurantSession, SessionStatus


@pytest.fixture
def served_order(client, staff_headers, table_one, salad):
    """An order for table 1 with two salads, still open."""
    order = client.post("/api/v1/orders", json={"table_id": table_one.id}, headers=staff_headers).json()
    client.post(
        f"/api/v1/orders/{order['id']}/items", json={"dish_id": salad.id, "quantity": 2}, headers=staff_headers
    )
    return order


class TestSessions:
    def test_open_and_close_session(self, client, db_session, admin_headers, staff_headers):
        assert client.get("/api/v1/sessions/current", headers=staff_headers).json() is None

        opened = client.post("/api/v1/sessions/open", headers=admin_headers)
        assert opened.status_code == 201
        assert opened.json()["status"] == SessionStatus.OPEN.value

        current = client.get("/api/v1/sessions/current", headers=staff_headers)
        assert current.json()["id"] == opened.json()["id"]

        closed = client.post("/api/v1/sessions/close", headers=admin_headers)
        assert closed.status_code == 200
        assert closed.json()["status"] == SessionStatus.CLOSED.value
        assert closed.json()["end_time"] is not None

    def test_only_one_open_session(self, client, admin_headers):
        client.post("/api/v1/sessions/open", headers=admin_headers)
        response = client.post("/api/v1/sessions/open", headers=admin_headers)
        assert response.status_code == 400

    def test_close_without_open_session(self, client, admin_headers):
        assert client.post("/api/v1/sessions/close", headers=admin_headers).status_code == 404

    def test_staff_cannot_open_session(self, client, staff_headers):
        assert client.post("/api/v1/sessions/open", headers=staff_headers).status_code == 403


class TestBarClosing:
    def test_open_order_blocks_closing(self, client, db_session, admin_headers, served_order):
        preview = client.get("/api/v1/closings/preview", headers=admin_headers).json()
        assert preview["can_close"] is False
        assert preview["block_reason"] == "Table 1 still has an open order"
        assert preview["report"] is None

        response = client.post("/api/v1/closings", json={}, headers=admin_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Table 1 still has an open order"
        assert body["pending_orders"][0]["id"] == served_order["id"]
        assert db_session.query(BarClosing).count() == 0

    def test_several_open_orders_are_counted(self, client, admin_headers, staff_headers, served_order):
        client.post("/api/v1/orders", json={"customer_name": "Barra"}, headers=staff_headers)
        preview = client.get("/api/v1/closings/preview", headers=admin_headers).json()
        assert preview["block_reason"] == "2 orders are still open"
        assert len(preview["pending_orders"]) == 2

    def test_closing_report(self, client, db_session, admin_headers, staff_headers, staff_user, served_order):
        client.post("/api/v1/sessions/open", headers=admin_headers)
        client.post(
            f"/api/v1/orders/{served_order['id']}/close", json={"payment_method": "cash"}, headers=staff_headers
        )

        response = client.post("/api/v1/closings", json={"notes": "Quiet night"}, headers=admin_headers)
        assert response.status_code == 201
        closing = response.json()
        assert closing["total_orders"] == 1
        assert float(closing["total_revenue"]) == pytest.approx(17.0)
        assert closing["sales_by_waiter"] == [
            {"waiter_id": staff_user.id, "waiter_name": "Sergio Staff", "total": 17.0, "orders_count": 1}
        ]
        assert closing["consumed_products"] == [
            {"dish_name": "Ensalada", "quantity": 2, "total_value": 17.0}
        ]
        assert closing["orders_summary"][0]["payment_method"] == "cash"
        assert closing["notes"] == "Quiet night"

        # Closing the bar ends the shift
        session = db_session.query(RestaurantSession).one()
        db_session.refresh(session)
        assert session.status == SessionStatus.CLOSED.value

    def test_preview_when_clear(self, client, admin_headers):
        preview = client.get("/api/v1/closings/preview", headers=admin_headers).json()
        assert preview["can_close"] is True
        assert preview["report"]["total_orders"] == 0

    def test_list_closings(self, client, admin_headers, staff_headers):
        client.post("/api/v1/closings", json={}, headers=admin_headers)
        client.post("/api/v1/closings", json={}, headers=admin_headers)
        response = client.get("/api/v1/closings?limit=1", headers=staff_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_kitchen_cannot_see_dashboard(self, client, kitchen_headers):
        assert client.get("/api/v1/closings", headers=kitchen_headers).status_code == 403

    def test_staff_cannot_close_bar(self, client, staff_headers):
        assert client.post("/api/v1/closings", json={}, headers=staff_headers).status_code == 403
