"""Tests for contextual logging and the formatters."""

import json
import logging

from ledgerflow.core.logging import (
    ContextualLogger,
    JSONFormatter,
    LoggerConfigurator,
    PlainFormatter,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "ledgerflow.test", "levelname": "INFO", "msg": "hi"})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_with_context_does_not_mutate_parent():
    base = ContextualLogger(logging.getLogger("ledgerflow.test"), {"service": "billing"})

    child = base.with_context(batch_id="b-1")

    assert base.dimensions == {"service": "billing"}
    assert child.dimensions == {"service": "billing", "batch_id": "b-1"}


def test_process_merges_dimensions_and_prefix():
    log = ContextualLogger(logging.getLogger("ledgerflow.test"), {"job_id": "j-1"}).with_prefix(
        "[settle] "
    )

    msg, kwargs = log.process("debited", {"extra": {"outcome": "debited"}})

    assert msg == "[settle] debited"
    assert kwargs["extra"] == {"job_id": "j-1", "outcome": "debited"}


def test_json_formatter_includes_dimensions():
    line = JSONFormatter().format(_record(organization_id="org-a"))

    payload = json.loads(line)
    assert payload["message"] == "hi"
    assert payload["level"] == "INFO"
    assert payload["organization_id"] == "org-a"


def test_plain_formatter_appends_sorted_dimensions():
    line = PlainFormatter().format(_record(batch_id="b", organization_id="o"))

    assert line.endswith("[batch_id=b organization_id=o]")


def test_configure_logger_namespaces_under_ledgerflow():
    log = LoggerConfigurator.configure_logger("consumers", {"consumer": "c1"})

    assert log.logger.name == "ledgerflow.consumers"
    assert log.dimensions == {"consumer": "c1"}
