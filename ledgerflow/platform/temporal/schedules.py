"""Temporal schedules for the periodic billing workflows.

``ensure_schedules()`` is idempotent: a missing schedule is created, an
existing one has its cron expression updated in place.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from croniter import croniter
from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleSpec,
    ScheduleState,
    ScheduleUpdate,
    ScheduleUpdateInput,
)

from ledgerflow.core.config import Settings
from ledgerflow.core.exceptions import LedgerflowException
from ledgerflow.core.logging import logger
from ledgerflow.platform.temporal.workflows import (
    BillingOrchestrationWorkflow,
    ReclaimStaleClaimsWorkflow,
)

ORCHESTRATION_SCHEDULE_ID = "ledgerflow-billing-orchestration"
RECLAIM_SCHEDULE_ID = "ledgerflow-billing-reclaim"


class InvalidCronExpressionError(LedgerflowException):
    """Raised when a configured cron expression does not parse."""

    def __init__(self, cron_expression: str):
        """Initialize with the offending expression."""
        self.cron_expression = cron_expression
        super().__init__(f"Invalid CRON expression: {cron_expression}")


@dataclass(frozen=True)
class ScheduleDefinition:
    """One cron schedule starting one workflow."""

    schedule_id: str
    workflow_run: Callable
    cron_expression: str
    note: str


class BillingScheduleService:
    """Creates or updates the billing cron schedules."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], Awaitable[Client]]] = None,
    ) -> None:
        """Initialize with settings and an optional client factory for tests."""
        self._settings = settings
        self._client_factory = client_factory
        self._client: Optional[Client] = None

    def definitions(self) -> list[ScheduleDefinition]:
        """The schedules this service manages."""
        return [
            ScheduleDefinition(
                schedule_id=ORCHESTRATION_SCHEDULE_ID,
                workflow_run=BillingOrchestrationWorkflow.run,
                cron_expression=self._settings.BILLING_ORCHESTRATION_CRON,
                note="Reconcile queued batches and bill pending usage events",
            ),
            ScheduleDefinition(
                schedule_id=RECLAIM_SCHEDULE_ID,
                workflow_run=ReclaimStaleClaimsWorkflow.run,
                cron_expression=self._settings.BILLING_RECLAIM_CRON,
                note="Resolve usage event claims stuck in QUEUING",
            ),
        ]

    async def ensure_schedules(self) -> list[str]:
        """Create missing schedules and refresh existing ones.

        Returns:
            Ids of the schedules that were newly created
        """
        definitions = self.definitions()
        for definition in definitions:
            if not croniter.is_valid(definition.cron_expression):
                raise InvalidCronExpressionError(definition.cron_expression)

        client = await self._get_client()
        created: list[str] = []
        for definition in definitions:
            try:
                await client.create_schedule(definition.schedule_id, self._build(definition))
                created.append(definition.schedule_id)
                logger.info(
                    f"Created schedule {definition.schedule_id} ({definition.cron_expression})"
                )
            except ScheduleAlreadyRunningError:
                await self._update(client, definition)
        return created

    async def _get_client(self) -> Client:
        if self._client is None:
            if self._client_factory is not None:
                self._client = await self._client_factory()
            else:
                from ledgerflow.platform.temporal.client import temporal_client

                self._client = await temporal_client.get_client()
        return self._client

    def _build(self, definition: ScheduleDefinition) -> Schedule:
        return Schedule(
            action=ScheduleActionStartWorkflow(
                definition.workflow_run,
                id=f"{definition.schedule_id}-run",
                task_queue=self._settings.TEMPORAL_TASK_QUEUE,
            ),
            spec=self._spec(definition.cron_expression),
            state=ScheduleState(note=definition.note, paused=False),
        )

    @staticmethod
    def _spec(cron_expression: str) -> ScheduleSpec:
        return ScheduleSpec(
            cron_expressions=[cron_expression],
            start_at=datetime.now(timezone.utc),
            jitter=timedelta(seconds=10),
        )

    async def _update(self, client: Client, definition: ScheduleDefinition) -> None:
        handle = client.get_schedule_handle(definition.schedule_id)
        spec = self._spec(definition.cron_expression)

        def _updater(input: ScheduleUpdateInput) -> ScheduleUpdate:
            schedule = input.description.schedule
            schedule.spec = spec
            return ScheduleUpdate(schedule=schedule)

        await handle.update(_updater)
        logger.info(f"Updated schedule {definition.schedule_id} ({definition.cron_expression})")
