"""Activity and workflow wiring.

The DI wiring point for Temporal: activities get their dependencies from
the container.
"""

from ledgerflow.core.logging import logger


def create_activities() -> list:
    """Create activity instances with dependencies from the container.

    Returns:
        List of activity ``.run`` methods to register with the worker.
    """
    from ledgerflow.core import container as container_mod
    from ledgerflow.platform.temporal.activities import (
        ReclaimStaleClaimsActivity,
        RunBillingOrchestrationActivity,
    )

    orchestrator = container_mod.container.orchestrator

    logger.debug("Wiring activities with container dependencies")

    return [
        RunBillingOrchestrationActivity(orchestrator=orchestrator).run,
        ReclaimStaleClaimsActivity(orchestrator=orchestrator).run,
    ]


def get_workflows() -> list:
    """Workflow classes to register."""
    from ledgerflow.platform.temporal.workflows import (
        BillingOrchestrationWorkflow,
        ReclaimStaleClaimsWorkflow,
    )

    return [BillingOrchestrationWorkflow, ReclaimStaleClaimsWorkflow]
