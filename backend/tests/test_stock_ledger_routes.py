"""Tests for the stock ledger HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from concessions.services.stock_ledger import MovementValidationError, StockLedgerService


API = "/api/v1"


@pytest.fixture
def ledger_url(test_product) -> str:
    return f"{API}/stock-ledger/{test_product.venue_id}/{test_product.id}"


def post_movement(client, url, movement_date, movement_type, quantity, **extra):
    payload = {"date": movement_date, "type": movement_type, "quantity": quantity}
    payload.update(extra)
    return client.post(url, json=payload)


class TestReadLedger:
    def test_read_period(self, client: TestClient, ledger_url: str):
        response = client.get(ledger_url, params={"year": 2024, "month": 3})
        assert response.status_code == 200
        data = response.json()
        assert data["ledger"]["year"] == 2024
        assert data["ledger"]["month_number"] == 3
        assert data["ledger"]["month_name"] == "March"
        assert data["ledger"]["entries"] == []
        assert data["expiry_recognized"] is False
        assert data["stock_status"] == "out_of_stock"

    def test_read_defaults_to_current_month(self, client: TestClient, ledger_url: str):
        response = client.get(ledger_url)
        assert response.status_code == 200
        assert 1 <= response.json()["ledger"]["month_number"] <= 12

    def test_invalid_month_rejected(self, client: TestClient, ledger_url: str):
        response = client.get(ledger_url, params={"year": 2024, "month": 13})
        assert response.status_code == 422

    def test_history(self, client: TestClient, ledger_url: str):
        post_movement(client, ledger_url, "2024-01-05", "ADDED", 10)
        post_movement(client, ledger_url, "2024-03-05", "SOLD", 4)

        response = client.get(f"{ledger_url}/history")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [(i["year"], i["month_number"]) for i in data["items"]] == [(2024, 1), (2024, 3)]
        assert float(data["items"][1]["carry_forward"]) == 10
        assert "entries" not in data["items"][0]

    def test_history_maps_engine_errors(self, client: TestClient, ledger_url: str, monkeypatch):
        def reject(self, venue_id, product_id, now=None):
            raise MovementValidationError("Month must be between 1 and 12, got 0")

        monkeypatch.setattr(StockLedgerService, "period_history", reject)

        response = client.get(f"{ledger_url}/history")
        assert response.status_code == 400
        assert "Month must be between" in response.json()["detail"]


class TestRecordMovement:
    def test_record_movement(self, client: TestClient, ledger_url: str):
        response = post_movement(
            client, ledger_url, "2024-03-05", "ADDED", "24", batch_number="LOT-7", notes="Delivery"
        )
        assert response.status_code == 201
        data = response.json()
        assert data["entry"]["type"] == "ADDED"
        assert float(data["entry"]["stock_added"]) == 24
        assert data["entry"]["batch_number"] == "LOT-7"
        assert float(data["ledger"]["closing_balance"]) == 24
        assert float(data["current_stock"]) == 24

    def test_zero_quantity_rejected(self, client: TestClient, ledger_url: str):
        response = post_movement(client, ledger_url, "2024-03-05", "SOLD", 0)
        assert response.status_code == 400
        assert "greater than 0" in response.json()["detail"]

    def test_zero_adjustment_rejected(self, client: TestClient, ledger_url: str):
        response = post_movement(client, ledger_url, "2024-03-05", "ADJUSTMENT", 0)
        assert response.status_code == 400

    def test_expiry_before_movement_date_rejected(self, client: TestClient, ledger_url: str):
        response = post_movement(client, ledger_url, "2024-02-10", "ADDED", 50, expire_date="2024-01-31")
        assert response.status_code == 400
        assert "before movement date" in response.json()["detail"]

    def test_unknown_type_rejected(self, client: TestClient, ledger_url: str):
        response = post_movement(client, ledger_url, "2024-03-05", "STOLEN", 1)
        assert response.status_code == 422

    def test_missing_date_rejected(self, client: TestClient, ledger_url: str):
        response = client.post(ledger_url, json={"type": "ADDED", "quantity": 1})
        assert response.status_code == 422

    def test_past_expiry_recognized_on_next_read(self, client: TestClient, ledger_url: str):
        post_movement(client, ledger_url, "2024-03-05", "ADDED", 12, expire_date="2024-03-20")

        response = client.get(ledger_url, params={"year": 2024, "month": 3})
        assert response.status_code == 200
        data = response.json()
        assert data["expiry_recognized"] is True
        assert float(data["ledger"]["entries"][0]["expired_stock"]) == 12
        assert float(data["ledger"]["closing_balance"]) == 0
        assert float(data["current_stock"]) == 0


class TestUpdateMovement:
    def test_update_movement(self, client: TestClient, ledger_url: str):
        created = post_movement(client, ledger_url, "2024-03-05", "ADDED", 10).json()
        entry_id = created["entry"]["id"]

        response = client.put(
            f"{ledger_url}/entries/{entry_id}",
            json={"date": "2024-03-05", "quantity": 15, "notes": "Recounted"},
        )
        assert response.status_code == 200
        data = response.json()
        assert float(data["entry"]["quantity"]) == 15
        assert data["entry"]["notes"] == "Recounted"
        assert float(data["ledger"]["closing_balance"]) == 15

    def test_update_missing_ledger(self, client: TestClient, ledger_url: str):
        response = client.put(f"{ledger_url}/entries/1", json={"date": "2024-05-01", "quantity": 1})
        assert response.status_code == 404
        assert response.json()["detail"] == "Monthly ledger not found"

    def test_update_missing_entry(self, client: TestClient, ledger_url: str):
        post_movement(client, ledger_url, "2024-03-05", "ADDED", 10)
        response = client.put(f"{ledger_url}/entries/999", json={"date": "2024-03-05", "quantity": 1})
        assert response.status_code == 404
        assert response.json()["detail"] == "Stock entry not found"

    def test_negative_override_rejected(self, client: TestClient, ledger_url: str):
        created = post_movement(client, ledger_url, "2024-03-05", "ADDED", 10).json()
        response = client.put(
            f"{ledger_url}/entries/{created['entry']['id']}",
            json={"date": "2024-03-05", "used_stock": -1},
        )
        assert response.status_code == 422


class TestDeleteMovement:
    def test_delete_movement(self, client: TestClient, ledger_url: str):
        first = post_movement(client, ledger_url, "2024-03-05", "ADDED", 10).json()
        post_movement(client, ledger_url, "2024-03-06", "ADDED", 3)

        response = client.delete(
            f"{ledger_url}/entries/{first['entry']['id']}", params={"year": 2024, "month": 3}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["deleted_entry_id"] == first["entry"]["id"]
        assert len(data["ledger"]["entries"]) == 1
        assert float(data["current_stock"]) == 3

    def test_delete_requires_period(self, client: TestClient, ledger_url: str):
        response = client.delete(f"{ledger_url}/entries/1")
        assert response.status_code == 422

    def test_delete_missing_ledger_and_entry(self, client: TestClient, ledger_url: str):
        response = client.delete(f"{ledger_url}/entries/1", params={"year": 2024, "month": 3})
        assert response.status_code == 404
        assert response.json()["detail"] == "Monthly ledger not found"

        post_movement(client, ledger_url, "2024-03-05", "ADDED", 1)
        response = client.delete(f"{ledger_url}/entries/999", params={"year": 2024, "month": 3})
        assert response.status_code == 404
        assert response.json()["detail"] == "Stock entry not found"

    def test_clear_period(self, client: TestClient, ledger_url: str):
        post_movement(client, ledger_url, "2024-03-05", "ADDED", 10)
        post_movement(client, ledger_url, "2024-03-06", "SOLD", 4)

        response = client.delete(f"{ledger_url}/periods/2024/3")
        assert response.status_code == 200
        data = response.json()
        assert data["cleared_count"] == 2
        assert data["ledger"]["entries"] == []
        assert float(data["current_stock"]) == 0

    def test_clear_missing_period(self, client: TestClient, ledger_url: str):
        response = client.delete(f"{ledger_url}/periods/2024/9")
        assert response.status_code == 404
        assert response.json()["detail"] == "Monthly ledger not found"


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
