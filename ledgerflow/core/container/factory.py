"""Container factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.
"""

from datetime import timedelta

from prometheus_client import CollectorRegistry

from ledgerflow.adapters.job_queue import FakeBillingJobQueue, RedisStreamBillingJobQueue
from ledgerflow.adapters.metrics import PrometheusBillingMetrics, PrometheusMetricsRenderer
from ledgerflow.core.config import JobQueueBackend, Settings
from ledgerflow.core.container.container import Container
from ledgerflow.core.logging import logger
from ledgerflow.core.protocols import BillingJobQueue
from ledgerflow.core.redis_client import redis_client
from ledgerflow.domains.billing.commands import BillingCommandHandler
from ledgerflow.domains.billing.orchestrator import BillingOrchestrator
from ledgerflow.domains.billing.reconciliation import BatchReconciler
from ledgerflow.domains.billing.settlement import BillingJobSettler
from ledgerflow.domains.ledger.debit_engine import LedgerDebitEngine
from ledgerflow.domains.ledger.repository import LedgerRepository
from ledgerflow.domains.usage_events.ingestion import GatewayLogParser, UsageEventIngestor
from ledgerflow.domains.usage_events.repository import UsageEventRepository
from ledgerflow.domains.usage_events.service import UsageEventService


def create_container(settings: Settings) -> Container:
    """Build the container with environment-appropriate implementations.

    Build order matters: the orchestrator needs the reconciler, and the
    command handler needs the orchestrator.
    """
    registry = CollectorRegistry()
    metrics = PrometheusBillingMetrics(registry=registry)
    renderer = PrometheusMetricsRenderer(registry=registry)

    store = UsageEventService(
        repository=UsageEventRepository(),
        claim_batch_size=settings.BILLING_CLAIM_BATCH_SIZE,
    )
    ledger = LedgerDebitEngine(repository=LedgerRepository())
    job_queue = _create_job_queue(settings)

    reconciler = BatchReconciler(store=store, ledger=ledger, metrics=metrics)
    orchestrator = BillingOrchestrator(
        store=store,
        ledger=ledger,
        queue=job_queue,
        reconciler=reconciler,
        metrics=metrics,
        claim_batch_size=settings.BILLING_CLAIM_BATCH_SIZE,
        publish_chunk_size=settings.BILLING_PUBLISH_CHUNK_SIZE,
        stale_claim_after=timedelta(minutes=settings.BILLING_STALE_CLAIM_MINUTES),
    )

    return Container(
        store=store,
        ledger=ledger,
        job_queue=job_queue,
        metrics=metrics,
        renderer=renderer,
        reconciler=reconciler,
        orchestrator=orchestrator,
        settler=BillingJobSettler(ledger=ledger, store=store, metrics=metrics),
        command_handler=BillingCommandHandler(
            store=store, ledger=ledger, orchestrator=orchestrator
        ),
        ingestor=UsageEventIngestor(
            store=store,
            parser=GatewayLogParser(units_per_usd=settings.BILLING_COST_UNITS_PER_USD),
        ),
    )


def _create_job_queue(settings: Settings) -> BillingJobQueue:
    """Redis Streams in every deployed environment.

    The in-memory queue only delivers within one process, so it is usable
    when the API, orchestrator and consumer share an event loop.
    """
    if settings.BILLING_JOB_QUEUE_BACKEND == JobQueueBackend.MEMORY:
        logger.warning("Using in-memory billing job queue; jobs do not survive a restart")
        return FakeBillingJobQueue(max_attempts=settings.BILLING_JOB_MAX_ATTEMPTS)

    return RedisStreamBillingJobQueue(
        client=redis_client.client,
        stream=settings.BILLING_JOBS_STREAM,
        group=settings.BILLING_JOBS_CONSUMER_GROUP,
        dead_letter_stream=settings.BILLING_JOBS_DEAD_LETTER_STREAM,
        max_attempts=settings.BILLING_JOB_MAX_ATTEMPTS,
    )
