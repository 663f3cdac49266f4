"""Tests for billing job ids and chunking."""

from uuid import uuid4

import pytest

from ledgerflow.domains.billing.tests.conftest import ORG_A, ORG_B
from ledgerflow.domains.billing.types import build_jobs, chunked, derive_job_id
from ledgerflow.schemas.usage_event import OrganizationCost


class TestDeriveJobId:
    def test_same_inputs_same_id(self):
        batch_id = uuid4()
        assert derive_job_id(batch_id, ORG_A) == derive_job_id(batch_id, ORG_A)

    def test_differs_per_organization(self):
        batch_id = uuid4()
        assert derive_job_id(batch_id, ORG_A) != derive_job_id(batch_id, ORG_B)

    def test_differs_per_batch(self):
        assert derive_job_id(uuid4(), ORG_A) != derive_job_id(uuid4(), ORG_A)


class TestBuildJobs:
    def test_one_job_per_organization(self):
        batch_id = uuid4()
        costs = [
            OrganizationCost(organization_id=ORG_A, total_cost_in_units=300),
            OrganizationCost(organization_id=ORG_B, total_cost_in_units=0),
        ]

        jobs = build_jobs(batch_id, costs)

        assert [job.organization_id for job in jobs] == [ORG_A, ORG_B]
        assert [job.total_cost_in_units for job in jobs] == [300, 0]
        assert all(job.batch_id == batch_id for job in jobs)
        assert jobs[0].job_id == derive_job_id(batch_id, ORG_A)

    def test_empty(self):
        assert build_jobs(uuid4(), []) == []


class TestChunked:
    def test_splits_with_remainder(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_exact_multiple(self):
        assert list(chunked([1, 2, 3, 4], 2)) == [[1, 2], [3, 4]]

    def test_empty(self):
        assert list(chunked([], 3)) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_size(self, size):
        with pytest.raises(ValueError):
            list(chunked([1], size))
