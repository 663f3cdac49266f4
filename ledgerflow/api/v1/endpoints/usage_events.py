"""Usage event ingestion endpoints.

Ingestion is idempotent on ``idempotency_key``: re-sending an event is
counted as a duplicate, never stored twice.
"""

from fastapi import APIRouter, status

from ledgerflow.api.deps import Inject
from ledgerflow.domains.usage_events.ingestion import UsageEventIngestor
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.usage_event import GatewayLogBatch, IngestResult, UsageEventBatch

router = APIRouter()


@router.post(
    "",
    response_model=IngestResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ingest Usage Events",
)
async def ingest_usage_events(
    batch: UsageEventBatch,
    store: UsageEventStoreProtocol = Inject(UsageEventStoreProtocol),
) -> IngestResult:
    """Append events as PENDING."""
    inserted = await store.ingest(batch.events)
    return IngestResult(received=len(batch.events), inserted=inserted)


@router.post(
    "/gateway-logs",
    response_model=IngestResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ingest Gateway Log Lines",
)
async def ingest_gateway_logs(
    batch: GatewayLogBatch,
    ingestor: UsageEventIngestor = Inject(UsageEventIngestor),
) -> IngestResult:
    """Parse raw gateway log lines, price them and append the resulting events."""
    return await ingestor.ingest_lines(batch.lines)
