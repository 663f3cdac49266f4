"""Temporal activity classes.

Each activity is a class with its dependencies declared as dataclass fields
and one ``@activity.defn`` method. Instances are built in worker/wiring.py
from the container; workflows refer to the unbound ``.run`` methods, and
Temporal matches them by the ``name=`` given in ``@activity.defn``.
"""

from ledgerflow.platform.temporal.activities.billing import (
    ReclaimStaleClaimsActivity,
    RunBillingOrchestrationActivity,
)

run_billing_orchestration_activity = RunBillingOrchestrationActivity.run
reclaim_stale_claims_activity = ReclaimStaleClaimsActivity.run

__all__ = [
    "RunBillingOrchestrationActivity",
    "ReclaimStaleClaimsActivity",
    "run_billing_orchestration_activity",
    "reclaim_stale_claims_activity",
]
