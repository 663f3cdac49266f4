"""Temporal workflows for periodic billing."""

from datetime import timedelta
from typing import Any, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from ledgerflow.platform.temporal.activities import (
        reclaim_stale_claims_activity,
        run_billing_orchestration_activity,
    )


@workflow.defn
class BillingOrchestrationWorkflow:
    """Reconcile QUEUED batches, then bill the next PENDING events."""

    @workflow.run
    async def run(self) -> dict[str, Any]:
        """Execute one orchestrator pass."""
        return await workflow.execute_activity(
            run_billing_orchestration_activity,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=10),
                maximum_interval=timedelta(minutes=1),
                backoff_coefficient=2.0,
            ),
        )


@workflow.defn
class ReclaimStaleClaimsWorkflow:
    """Confirm or roll back claims stuck in QUEUING."""

    @workflow.run
    async def run(self, older_than_minutes: Optional[int] = None) -> dict[str, Any]:
        """Execute one stale-claim sweep."""
        return await workflow.execute_activity(
            reclaim_stale_claims_activity,
            older_than_minutes,
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=10),
                maximum_interval=timedelta(minutes=1),
                backoff_coefficient=2.0,
            ),
        )
