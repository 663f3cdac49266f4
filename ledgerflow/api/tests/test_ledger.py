"""API tests for the ledger endpoints."""

from uuid import uuid4

import pytest


class TestBalance:
    """Tests for GET /v1/ledger/{organization_id}/balance."""

    @pytest.mark.asyncio
    async def test_unknown_organization_returns_404(self, client):
        response = await client.get("/v1/ledger/org-missing/balance")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_returns_balance(self, client, fake_ledger_repo):
        fake_ledger_repo.seed_layer("org-a", 1500)

        response = await client.get("/v1/ledger/org-a/balance")

        assert response.status_code == 200
        assert response.json()["balance_in_usd_cents"] == 1500


class TestCredits:
    """Tests for /v1/ledger/{organization_id}/credits."""

    @pytest.mark.asyncio
    async def test_add_credit_opens_account_and_layer(self, client, fake_ledger_repo):
        response = await client.post(
            "/v1/ledger/org-a/credits",
            json={"amount_in_usd_cents": 500, "type": "promotion_credit"},
        )

        assert response.status_code == 201
        assert response.json()["remaining_in_usd_cents"] == 500
        assert fake_ledger_repo.balance_of("org-a") == 500

        layers = await client.get("/v1/ledger/org-a/credits")
        assert [layer["amount_in_usd_cents"] for layer in layers.json()] == [500]

    @pytest.mark.asyncio
    async def test_usage_fee_is_not_a_credit_type(self, client):
        response = await client.post(
            "/v1/ledger/org-a/credits",
            json={"amount_in_usd_cents": 500, "type": "usage_fee"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_non_positive_amount_is_rejected(self, client):
        response = await client.post("/v1/ledger/org-a/credits", json={"amount_in_usd_cents": 0})

        assert response.status_code == 422


class TestDebits:
    """Tests for POST /v1/ledger/debits."""

    @pytest.mark.asyncio
    async def test_debit_then_duplicate(self, client, fake_ledger_repo):
        fake_ledger_repo.seed_layer("org-a", 1000)
        body = {
            "organization_id": "org-a",
            "job_id": str(uuid4()),
            "batch_id": str(uuid4()),
            "total_cost_in_units": 250,
        }

        first = await client.post("/v1/ledger/debits", json=body)
        second = await client.post("/v1/ledger/debits", json=body)

        assert first.status_code == 200
        assert first.json()["outcome"] == "debited"
        assert second.json()["outcome"] == "duplicate"
        assert fake_ledger_repo.balance_of("org-a") == 750

    @pytest.mark.asyncio
    async def test_insufficient_balance_returns_402(self, client, fake_ledger_repo):
        fake_ledger_repo.seed_layer("org-a", 100)

        response = await client.post(
            "/v1/ledger/debits",
            json={
                "organization_id": "org-a",
                "job_id": str(uuid4()),
                "batch_id": str(uuid4()),
                "total_cost_in_units": 250,
            },
        )

        assert response.status_code == 402
        assert response.json()["required"] == 250
        assert response.json()["available"] == 100
        assert fake_ledger_repo.balance_of("org-a") == 100
