"""API tests for the internal billing command endpoint."""

from uuid import uuid4

import pytest

from ledgerflow.schemas.usage_event import UsageEventStatus

URL = "/v1/internal/billing/commands"


class TestBillingCommands:
    @pytest.mark.asyncio
    async def test_claim_then_rollback(self, client, fake_usage_event_repo):
        fake_usage_event_repo.seed("org-a", 100)

        claim = await client.post(URL, json={"method": "claim_pending_batch"})
        batch_id = claim.json()["result"]["batch_id"]
        rollback = await client.post(URL, json={"method": "rollback_claim", "batch_id": batch_id})

        assert claim.status_code == 200
        assert claim.json()["method"] == "claim_pending_batch"
        assert claim.json()["result"]["claimed"] == 1
        assert rollback.json()["result"] == 1
        assert len(fake_usage_event_repo.by_status(UsageEventStatus.PENDING)) == 1

    @pytest.mark.asyncio
    async def test_run_orchestration_publishes_jobs(
        self, client, fake_usage_event_repo, fake_job_queue
    ):
        fake_usage_event_repo.seed("org-a", 100)
        fake_usage_event_repo.seed("org-b", 20)

        response = await client.post(URL, json={"method": "run_orchestration"})

        assert response.status_code == 200
        assert response.json()["result"]["batch"]["jobs_published"] == 2
        assert len(fake_job_queue.sent) == 2

    @pytest.mark.asyncio
    async def test_proof_of_payment_keys_are_batch_ids(self, client):
        batch_id = str(uuid4())

        response = await client.post(
            URL, json={"method": "get_proof_of_payment", "batch_ids": [batch_id]}
        )

        assert response.json()["result"] == {batch_id: 0}

    @pytest.mark.asyncio
    async def test_republish_of_unknown_batch_is_a_conflict(self, client):
        response = await client.post(
            URL, json={"method": "republish_unsettled", "batch_id": str(uuid4())}
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_method_is_rejected(self, client):
        response = await client.post(URL, json={"method": "drop_everything"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_publish_failure_is_reported_not_raised(
        self, client, fake_usage_event_repo, fake_job_queue
    ):
        fake_usage_event_repo.seed("org-a", 100)
        fake_job_queue.fail_next_send()

        response = await client.post(URL, json={"method": "run_orchestration"})

        batch = response.json()["result"]["batch"]
        assert response.status_code == 200
        assert batch["rolled_back"] is True
        assert batch["error"]
