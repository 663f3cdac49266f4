"""Tests for gateway log parsing and ingestion."""

import json
from datetime import datetime

import pytest

from ledgerflow.domains.usage_events.ingestion import (
    GatewayLogParser,
    UsageEventIngestor,
    idempotency_key_for_line,
)
from ledgerflow.domains.usage_events.tests.conftest import ORG_A


def _make_line(
    organization_id: str = ORG_A,
    model: str = "openai/gpt-4o-mini",
    prompt_tokens: int = 1000,
    completion_tokens: int = 500,
    is_internal: bool = True,
    created: int = 1_700_000_000,
    encode_metadata: bool = False,
) -> str:
    metadata = {
        "organizationId": organization_id,
        "connectionType": "direct",
        "isInternal": is_internal,
        "source": "whatsapp",
        "assistantId": "asst-1",
    }
    entry = {
        "Metadata": json.dumps(metadata) if encode_metadata else metadata,
        "ResponseBody": {
            "model": model,
            "created": created,
            "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
        },
    }
    return json.dumps(entry)


class TestGatewayLogParser:
    def test_parses_and_prices_a_line(self):
        line = _make_line()

        event = GatewayLogParser().parse_line(line)

        assert event.organization_id == ORG_A
        assert event.cost_units == 1  # 0.545 cents rounds up
        assert event.input_tokens == 1000
        assert event.output_tokens == 500
        assert event.model == "openai/gpt-4o-mini"
        assert event.connection_type == "direct"
        assert event.created_at == datetime(2023, 11, 14, 22, 13, 20)
        assert event.idempotency_key == idempotency_key_for_line(line)
        assert event.event_metadata["is_internal"] is True

    def test_metadata_may_be_json_encoded(self):
        event = GatewayLogParser().parse_line(_make_line(encode_metadata=True))

        assert event.organization_id == ORG_A

    def test_same_line_same_key(self):
        line = _make_line()

        assert idempotency_key_for_line(line) == idempotency_key_for_line(line)
        assert len(idempotency_key_for_line(line)) == 64

    @pytest.mark.parametrize(
        "line",
        [
            "not json",
            json.dumps({"Metadata": {"organizationId": ORG_A}}),
            json.dumps({"Metadata": {}, "ResponseBody": {"model": "m", "usage": {}}}),
            json.dumps({"Metadata": [], "ResponseBody": {}}),
        ],
    )
    def test_malformed_lines_raise_value_error(self, line):
        with pytest.raises(ValueError):
            GatewayLogParser().parse_line(line)

    def test_parse_lines_skips_blank_and_counts_malformed(self):
        lines = [_make_line(), "", "garbage", _make_line(ORG_A, created=1)]

        result = GatewayLogParser().parse_lines(lines)

        assert len(result.events) == 2
        assert result.skipped == 1


class TestUsageEventIngestor:
    @pytest.mark.asyncio
    async def test_reingesting_a_log_file_stores_nothing_new(self, service, repo):
        ingestor = UsageEventIngestor(store=service, parser=GatewayLogParser())
        lines = [_make_line(created=1), _make_line(created=2), "garbage"]

        first = await ingestor.ingest_lines(lines)
        second = await ingestor.ingest_lines(lines)

        assert (first.received, first.inserted, first.skipped) == (3, 2, 1)
        assert (second.inserted, second.duplicates) == (0, 2)
        assert len(repo.all()) == 2

    @pytest.mark.asyncio
    async def test_all_malformed_skips_store(self, service, repo):
        ingestor = UsageEventIngestor(store=service, parser=GatewayLogParser())

        result = await ingestor.ingest_lines(["garbage"])

        assert result.inserted == 0
        assert repo.call_count("insert_ignore_duplicates") == 0
