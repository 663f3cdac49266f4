"""Turn raw AI gateway log lines into usage events.

One line is one JSON object with a ``Metadata`` section (who made the call
and through which channel) and a ``ResponseBody`` section (model, token
usage, creation timestamp). Either section may arrive as a JSON-encoded
string. The SHA-256 of the raw line is the event's idempotency key, so
re-delivering a log file never bills a call twice.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ledgerflow.domains.usage_events.pricing import calculate_cost_units
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.usage_event import IngestResult, UsageEventCreate

logger = logging.getLogger(__name__)


def idempotency_key_for_line(line: str) -> str:
    """Hex SHA-256 of a raw log line."""
    return hashlib.sha256(line.encode("utf-8")).hexdigest()


@dataclass
class ParseResult:
    """Events parsed from a set of lines plus the count of unusable lines."""

    events: list[UsageEventCreate] = field(default_factory=list)
    skipped: int = 0


class GatewayLogParser:
    """Parses gateway log lines and prices each call."""

    def __init__(self, units_per_usd: int = 100) -> None:
        """Initialize with the cost-unit scale."""
        self._units_per_usd = units_per_usd

    def parse_line(self, line: str) -> UsageEventCreate:
        """Parse one line.

        Raises:
            ValueError: if the line is not a usable gateway log entry.
        """
        try:
            entry = json.loads(line)
            metadata = self._section(entry, "Metadata")
            body = self._section(entry, "ResponseBody")
            usage = body["usage"]
            model = str(body["model"])
            input_tokens = int(usage["prompt_tokens"])
            output_tokens = int(usage["completion_tokens"])
            organization_id = str(metadata["organizationId"])
        except (KeyError, TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed gateway log line: {e}") from e

        is_internal = bool(metadata.get("isInternal", False))
        cost_units = calculate_cost_units(
            model,
            input_tokens,
            output_tokens,
            is_internal,
            units_per_usd=self._units_per_usd,
        )

        return UsageEventCreate(
            idempotency_key=idempotency_key_for_line(line),
            organization_id=organization_id,
            cost_units=cost_units,
            created_at=self._created_at(body.get("created")),
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            connection_type=metadata.get("connectionType"),
            event_metadata={
                "source": metadata.get("source"),
                "is_internal": is_internal,
                "assistant_id": metadata.get("assistantId"),
            },
        )

    def parse_lines(self, lines: Iterable[str]) -> ParseResult:
        """Parse many lines; blank lines are ignored and malformed ones counted."""
        result = ParseResult()
        for line in lines:
            if not line.strip():
                continue
            try:
                result.events.append(self.parse_line(line))
            except ValueError as e:
                result.skipped += 1
                logger.warning("Skipping gateway log line: %s", e)
        return result

    @staticmethod
    def _section(entry: dict[str, Any], name: str) -> dict[str, Any]:
        section = entry[name]
        if isinstance(section, str):
            section = json.loads(section)
        if not isinstance(section, dict):
            raise TypeError(f"{name} is not an object")
        return section

    @staticmethod
    def _created_at(created: Optional[Any]) -> Optional[datetime]:
        if created is None:
            return None
        try:
            stamp = datetime.fromtimestamp(int(created), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None
        return stamp.replace(tzinfo=None)


class UsageEventIngestor:
    """Parses raw gateway logs and appends the resulting events."""

    def __init__(self, store: UsageEventStoreProtocol, parser: GatewayLogParser) -> None:
        """Initialize with the event store and a parser."""
        self._store = store
        self._parser = parser

    async def ingest_lines(self, lines: Iterable[str]) -> IngestResult:
        """Parse and store ``lines``; duplicates and malformed lines are not errors."""
        parsed = self._parser.parse_lines(lines)
        inserted = await self._store.ingest(parsed.events) if parsed.events else 0
        return IngestResult(
            received=len(parsed.events) + parsed.skipped,
            inserted=inserted,
            skipped=parsed.skipped,
        )
