"""Temporal workflows for ledgerflow."""

from ledgerflow.platform.temporal.workflows.billing import (
    BillingOrchestrationWorkflow,
    ReclaimStaleClaimsWorkflow,
)

__all__ = ["BillingOrchestrationWorkflow", "ReclaimStaleClaimsWorkflow"]
