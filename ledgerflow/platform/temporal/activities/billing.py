"""Temporal activities for the billing pipeline.

Activity classes with explicit dependency injection. Each returns a plain
JSON-compatible dict so the default data converter can carry it.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from temporalio import activity

from ledgerflow.core.logging import logger
from ledgerflow.domains.billing.protocols import BillingOrchestratorProtocol


@dataclass
class RunBillingOrchestrationActivity:
    """Run one orchestrator pass: reconcile, then create and publish a batch.

    Dependencies:
        orchestrator: The billing orchestrator from the container
    """

    orchestrator: BillingOrchestratorProtocol

    @activity.defn(name="run_billing_orchestration_activity")
    async def run(self) -> dict[str, Any]:
        """Run the orchestrator once and return its report."""
        report = await self.orchestrator.run()
        if not report.succeeded:
            logger.with_context(batch_id=str(report.batch.batch_id)).warning(
                f"Billing orchestration finished with error: {report.batch.error}"
            )
        return report.model_dump(mode="json")


@dataclass
class ReclaimStaleClaimsActivity:
    """Resolve batches stuck in QUEUING.

    Dependencies:
        orchestrator: The billing orchestrator from the container
    """

    orchestrator: BillingOrchestratorProtocol

    @activity.defn(name="reclaim_stale_claims_activity")
    async def run(self, older_than_minutes: Optional[int] = None) -> dict[str, Any]:
        """Sweep stale claims.

        Args:
            older_than_minutes: Override for the configured stale threshold
        """
        older_than = timedelta(minutes=older_than_minutes) if older_than_minutes else None
        report = await self.orchestrator.reclaim_stale_claims(older_than)
        return report.model_dump(mode="json")
