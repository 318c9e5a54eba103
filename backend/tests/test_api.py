# Overview: Pytest coverage for the JSON API; a full dinner service over HTTP plus error mapping.

from datetime import timedelta

import pytest

from tablepos.time_utils import to_utc_z, utcnow


@pytest.fixture
def seeded(client, db_session):
    """Product, table and open register created through the API."""
    product = client.post("/api/products", json={
        "name": "Milanesa", "category": "Food", "price_cents": 4500, "stock": 30,
    }).get_json()["product"]
    table = client.post("/api/tables", json={"number": 5, "name": "Patio"}).get_json()["table"]
    register = client.post("/api/registers/open", json={
        "register_number": 1, "shift": "NIGHT", "opening_float_cents": 20000, "user": "ana",
    }).get_json()["register"]
    return {"product": product, "table": table, "register": register}


def test_health(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_dinner_service_end_to_end(client, seeded):
    product_id = seeded["product"]["id"]
    table_id = seeded["table"]["id"]
    register_id = seeded["register"]["id"]

    response = client.post(f"/api/tables/{table_id}/lines", json={"product_id": product_id, "quantity": 2})
    assert response.status_code == 201
    table = response.get_json()["table"]
    assert table["state"] == "OCCUPIED"
    assert table["total_cents"] == 9000

    line_id = table["lines"][0]["id"]
    response = client.patch(f"/api/tables/{table_id}/lines/{line_id}", json={"quantity": 3})
    assert response.get_json()["table"]["total_cents"] == 13500

    response = client.post(f"/api/tables/{table_id}/close", json={"cash_paid_cents": 15000, "user": "ana"})
    assert response.status_code == 201
    sale = response.get_json()["sale"]
    assert sale["total_cents"] == 13500
    assert sale["change_cents"] == 1500
    assert sale["register_id"] == register_id
    assert sale["lines"][0]["product_name"] == "Milanesa"

    table = client.get(f"/api/tables/{table_id}").get_json()["table"]
    assert (table["state"], table["total_cents"], table["lines"]) == ("FREE", 0, [])
    assert client.get(f"/api/products/{product_id}").get_json()["product"]["stock"] == 27

    register = client.get(f"/api/registers/{register_id}").get_json()["register"]
    assert register["cash_cents"] == 20000 + 15000

    closure = client.post(f"/api/registers/{register_id}/close", json={"user": "ana"}).get_json()["closure"]
    assert closure["total_sales_cents"] == 15000
    assert closure["final_cash_cents"] == 35000


def test_purchase_and_movements(client, seeded, supplier):
    product_id = seeded["product"]["id"]
    response = client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "document_number": "F-77",
        "delivery_date": "2024-05-01",
        "payment_method": "CASH",
        "lines": [{"product_id": product_id, "quantity": 10, "unit_cost_cents": 2000}],
    })
    assert response.status_code == 201
    assert response.get_json()["purchase"]["total_cents"] == 20000
    assert client.get(f"/api/products/{product_id}").get_json()["product"]["stock"] == 40

    movements = client.get(f"/api/inventory/movements?product_id={product_id}").get_json()["movements"]
    assert [m["kind"] for m in movements][0] == "IN"


def test_reservation_conflict_over_http(client, seeded):
    table_id = seeded["table"]["id"]
    start = (utcnow() + timedelta(days=1)).replace(hour=19, minute=0, second=0, microsecond=0)
    body = {"table_id": table_id, "client_name": "Lopez", "starts_at": to_utc_z(start), "party_size": 4}
    assert client.post("/api/reservations", json=body).status_code == 201

    clash = dict(body, client_name="Garcia", starts_at=to_utc_z(start + timedelta(hours=1)), duration_minutes=60)
    response = client.post("/api/reservations", json=clash)
    assert response.status_code == 409
    assert "conflicting_reservation_id" in response.get_json()["details"]


class TestErrorMapping:
    def test_not_found(self, client, db_session):
        response = client.get("/api/tables/999")
        assert response.status_code == 404
        assert response.get_json()["details"] == {"entity": "Table", "id": 999}

    def test_missing_fields(self, client, db_session):
        response = client.post("/api/tables", json={"name": "No number"})
        assert response.status_code == 400
        assert response.get_json()["details"]["missing"] == ["number"]

    def test_insufficient_stock_is_conflict(self, client, seeded):
        response = client.post(
            f"/api/tables/{seeded['table']['id']}/lines",
            json={"product_id": seeded["product"]["id"], "quantity": 31},
        )
        assert response.status_code == 409
        assert response.get_json()["details"] == {"available": 30, "requested": 31}

    def test_insufficient_payment_is_bad_request(self, client, seeded):
        table_id = seeded["table"]["id"]
        client.post(f"/api/tables/{table_id}/lines", json={"product_id": seeded["product"]["id"], "quantity": 1})
        response = client.post(f"/api/tables/{table_id}/close", json={"cash_paid_cents": 100})
        assert response.status_code == 400
        assert client.get(f"/api/tables/{table_id}").get_json()["table"]["state"] == "OCCUPIED"

    def test_unknown_enum_value(self, client, db_session):
        response = client.post("/api/registers/open", json={"register_number": 2, "shift": "BRUNCH"})
        assert response.status_code == 400

    def test_malformed_date(self, client, db_session):
        response = client.get("/api/reservations?day=not-a-date")
        assert response.status_code == 400

    def test_numeric_reservation_start_is_bad_request(self, client, seeded):
        response = client.post("/api/reservations", json={
            "table_id": seeded["table"]["id"], "client_name": "Lopez", "starts_at": 1700000000, "party_size": 2,
        })
        assert response.status_code == 400
        assert response.get_json()["details"]["field"] == "starts_at"

    def test_numeric_delivery_date_is_bad_request(self, client, seeded, supplier):
        response = client.post("/api/purchases", json={
            "supplier_id": supplier.id,
            "document_number": "F-78",
            "delivery_date": 20240501,
            "payment_method": "CASH",
            "lines": [{"product_id": seeded["product"]["id"], "quantity": 1, "unit_cost_cents": 100}],
        })
        assert response.status_code == 400
        assert response.get_json()["details"]["field"] == "delivery_date"

    def test_fractional_quantity_is_bad_request(self, client, seeded):
        response = client.post(
            f"/api/tables/{seeded['table']['id']}/lines",
            json={"product_id": seeded["product"]["id"], "quantity": 2.9},
        )
        assert response.status_code == 400
        assert client.get(f"/api/products/{seeded['product']['id']}").get_json()["product"]["stock"] == 30
