"""Tests for tables and reservations."""

from gastro.models.restaurant import TableStatus


def _reserve(client, headers, table_id, **overrides):
    payload = {
        "table_id": table_id,
        "customer_name": "Familia García",
        "reserved_at": "2026-10-20T21:00:00",
        "party_size": 4,
    }
    payload.update(overrides)
    return client.post("/api/v1/reservations", json=payload, headers=headers)


class TestReservations:
    def test_reservation_marks_table_reserved(self, client, db_session, staff_headers, table_one):
        response = _reserve(client, staff_headers, table_one.id)
        assert response.status_code == 201
        assert response.json()["status"] == "active"

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.RESERVED.value

    def test_party_size_must_be_positive(self, client, staff_headers, table_one):
        assert _reserve(client, staff_headers, table_one.id, party_size=0).status_code == 400

    def test_blank_customer_name(self, client, staff_headers, table_one):
        assert _reserve(client, staff_headers, table_one.id, customer_name="  ").status_code == 400

    def test_cancel_frees_table(self, client, db_session, staff_headers, table_one):
        reservation = _reserve(client, staff_headers, table_one.id).json()
        response = client.post(f"/api/v1/reservations/{reservation['id']}/cancel", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.FREE.value

    def test_cancel_keeps_table_reserved_with_other_booking(self, client, db_session, staff_headers, table_one):
        first = _reserve(client, staff_headers, table_one.id).json()
        _reserve(client, staff_headers, table_one.id, customer_name="Otro", reserved_at="2026-10-21T21:00:00")
        client.post(f"/api/v1/reservations/{first['id']}/cancel", headers=staff_headers)

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.RESERVED.value

    def test_cancel_twice(self, client, staff_headers, table_one):
        reservation = _reserve(client, staff_headers, table_one.id).json()
        client.post(f"/api/v1/reservations/{reservation['id']}/cancel", headers=staff_headers)
        response = client.post(f"/api/v1/reservations/{reservation['id']}/cancel", headers=staff_headers)
        assert response.status_code == 400

    def test_list_filters_by_status(self, client, staff_headers, table_one):
        reservation = _reserve(client, staff_headers, table_one.id).json()
        client.post(f"/api/v1/reservations/{reservation['id']}/cancel", headers=staff_headers)

        assert client.get("/api/v1/reservations", headers=staff_headers).json() == []
        cancelled = client.get("/api/v1/reservations?status=cancelled", headers=staff_headers).json()
        assert [r["id"] for r in cancelled] == [reservation["id"]]


class TestTables:
    def test_list_tables(self, client, staff_headers):
        response = client.get("/api/v1/tables", headers=staff_headers)
        assert response.status_code == 200
        assert [t["table_number"] for t in response.json()] == [1, 2, 3, 4, 5]

    def test_create_table(self, client, admin_headers):
        response = client.post("/api/v1/tables", json={"table_number": 6, "capacity": 8}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["status"] == "free"

    def test_duplicate_table_number(self, client, admin_headers):
        response = client.post("/api/v1/tables", json={"table_number": 1}, headers=admin_headers)
        assert response.status_code == 400

    def test_staff_cannot_create_table(self, client, staff_headers):
        assert client.post("/api/v1/tables", json={"table_number": 7}, headers=staff_headers).status_code == 403

    def test_cannot_set_occupied_directly(self, client, staff_headers, table_one):
        response = client.put(
            f"/api/v1/tables/{table_one.id}/status", json={"status": "occupied"}, headers=staff_headers
        )
        assert response.status_code == 400

    def test_occupied_table_keeps_its_order(self, client, staff_headers, table_one):
        client.post("/api/v1/orders", json={"table_id": table_one.id}, headers=staff_headers)
        response = client.put(f"/api/v1/tables/{table_one.id}/status", json={"status": "free"}, headers=staff_headers)
        assert response.status_code == 400

    def test_reserve_table_manually(self, client, staff_headers, table_one):
        response = client.put(
            f"/api/v1/tables/{table_one.id}/status", json={"status": "reserved"}, headers=staff_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "reserved"
