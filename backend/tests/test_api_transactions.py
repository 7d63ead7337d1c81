"""Tests for transactions API endpoints."""

import pytest
from decimal import Decimal

from ledger.dependencies import get_transaction_store
from ledger.main import app
from ledger.services.errors import StoreFailure
from ledger.services.transaction_store import TransactionStore


def series_body(sample_account, **recurrence):
    return {
        "title": "Rent",
        "amount": "1500.00",
        "type": "expense",
        "date": "2024-01-31",
        "account_id": sample_account.id,
        "recurrence": dict({"frequency": "monthly", "count": 12}, **recurrence),
    }


class TestCreateTransactionAPI:
    """Test transaction creation."""

    def test_create_one_off(self, client, sample_account):
        response = client.post("/api/v1/transactions", json={
            "title": "Dentist",
            "amount": "180.00",
            "date": "2024-05-10",
            "account_id": sample_account.id,
        })
        assert response.status_code == 201
        data = response.json()
        assert data["parent"]["date"] == "2024-05-10"
        assert data["parent"]["is_recurring"] is False
        assert data["children"] == []
        assert data["duration_description"] is None

    def test_create_series(self, client, sample_account):
        response = client.post("/api/v1/transactions", json=series_body(sample_account))
        assert response.status_code == 201
        data = response.json()

        parent = data["parent"]
        assert parent["is_recurring"] is True
        assert parent["is_parent_template"] is True
        assert parent["date"] == "2024-01-31"
        assert parent["next_recurrence_date"] == "2024-02-29"
        assert parent["recurrence_frequency"] == "monthly"

        dates = [child["date"] for child in data["children"]]
        assert len(dates) == 12
        assert dates[:3] == ["2024-02-29", "2024-03-31", "2024-04-30"]
        assert dates[-1] == "2025-01-31"
        assert all(child["parent_transaction_id"] == parent["id"] for child in data["children"])
        assert data["duration_description"] == "12 repetitions • duration ≈ 1 year"

    def test_custom_days_ignored_for_other_frequencies(self, client, sample_account):
        """Forms submit a default custom_days even when another frequency is chosen."""
        response = client.post("/api/v1/transactions", json=series_body(sample_account, custom_days=1, count=2))
        assert response.status_code == 201
        assert response.json()["parent"]["custom_days"] is None

    def test_custom_without_days(self, client, sample_account):
        response = client.post("/api/v1/transactions", json=series_body(sample_account, frequency="custom"))
        assert response.status_code == 400

    @pytest.mark.parametrize("recurrence", [{"count": 0}, {"count": 366}, {"interval": 0}])
    def test_invalid_rule(self, client, sample_account, recurrence):
        response = client.post("/api/v1/transactions", json=series_body(sample_account, **recurrence))
        assert response.status_code == 400
        assert client.get("/api/v1/transactions").json()["total"] == 0

    def test_account_and_card(self, client, sample_account, sample_card):
        body = series_body(sample_account)
        body["card_id"] = sample_card.id
        response = client.post("/api/v1/transactions", json=body)
        assert response.status_code == 422

    def test_partial_failure(self, client, db_session, sample_account):
        class FailingBatchStore(TransactionStore):
            def insert_batch(self, records):
                raise StoreFailure("batch rejected")

        app.dependency_overrides[get_transaction_store] = lambda: FailingBatchStore(db_session)
        response = client.post("/api/v1/transactions", json=series_body(sample_account))
        assert response.status_code == 500
        data = response.json()
        assert data["rollback_succeeded"] is True
        assert data["parent_id"]

        del app.dependency_overrides[get_transaction_store]
        assert client.get("/api/v1/transactions").json()["total"] == 0

    def test_store_failure(self, client, db_session, sample_account):
        class FailingStore(TransactionStore):
            def insert_one(self, record):
                raise StoreFailure("insert rejected")

        app.dependency_overrides[get_transaction_store] = lambda: FailingStore(db_session)
        response = client.post("/api/v1/transactions", json=series_body(sample_account))
        assert response.status_code == 503


class TestTransactionsAPI:
    """Test reading, editing and deleting single transactions."""

    def test_list_transactions_empty(self, client):
        """Should return empty paginated list."""
        response = client.get("/api/v1/transactions")
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    def test_list_by_parent(self, client, sample_series, sample_transaction):
        response = client.get(
            "/api/v1/transactions",
            params={"parent_transaction_id": sample_series.parent.id, "per_page": 5}
        )
        data = response.json()
        assert data["total"] == 12
        assert data["pages"] == 3
        assert data["items"][0]["date"] == "2024-02-29"

    def test_list_by_date_range(self, client, sample_series):
        response = client.get(
            "/api/v1/transactions",
            params={"start_date": "2024-03-01", "end_date": "2024-05-31"}
        )
        dates = [item["date"] for item in response.json()["items"]]
        assert dates == ["2024-03-31", "2024-04-30", "2024-05-31"]

    def test_search_transactions(self, client, sample_transaction):
        """Should filter by search term."""
        response = client.get("/api/v1/transactions", params={"search": "Groc"})
        assert len(response.json()["items"]) == 1

        response = client.get("/api/v1/transactions", params={"search": "xyz"})
        assert len(response.json()["items"]) == 0

    def test_get_transaction(self, client, sample_transaction):
        response = client.get(f"/api/v1/transactions/{sample_transaction.id}")
        assert response.status_code == 200
        assert response.json()["id"] == sample_transaction.id

    def test_get_missing(self, client):
        response = client.get("/api/v1/transactions/missing")
        assert response.status_code == 404

    def test_update_single_occurrence(self, client, sample_series):
        target = sample_series.children[0]
        response = client.patch(f"/api/v1/transactions/{target.id}", json={"amount": "60.00"})
        assert response.status_code == 200
        assert Decimal(response.json()["amount"]) == Decimal("60.00")

        other = client.get(f"/api/v1/transactions/{sample_series.children[1].id}").json()
        assert Decimal(other["amount"]) == Decimal("49.90")

    def test_update_occurrence_rule_rejected(self, client, sample_series):
        target = sample_series.children[0]
        response = client.patch(f"/api/v1/transactions/{target.id}", json={"recurrence_count": 2})
        assert response.status_code == 400

    def test_update_missing(self, client):
        response = client.patch("/api/v1/transactions/missing", json={"title": "x"})
        assert response.status_code == 404

    def test_delete_single_occurrence(self, client, sample_series):
        target = sample_series.children[0]
        response = client.delete(f"/api/v1/transactions/{target.id}")
        assert response.status_code == 200
        assert response.json() == {"deleted": 1}

        response = client.get(
            "/api/v1/transactions",
            params={"parent_transaction_id": sample_series.parent.id}
        )
        assert response.json()["total"] == 11

    def test_delete_missing(self, client):
        response = client.delete("/api/v1/transactions/missing")
        assert response.status_code == 404
