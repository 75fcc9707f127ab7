from __future__ import annotations

import json
import logging

from milestone_ledger.utils.logging import _json_formatter

EXPECTED_RECORD_ID = 10
EXPECTED_GOAL_ID = 7


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.record_id = EXPECTED_RECORD_ID
    record.caller = "alice"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["record_id"] == EXPECTED_RECORD_ID
    assert payload["caller"] == "alice"
    assert "lineno" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"goal_id": EXPECTED_GOAL_ID}

    payload = json.loads(_json_formatter(record))

    assert payload["goal_id"] == EXPECTED_GOAL_ID
    assert "extra" not in payload


def test_logger_extra_reaches_json_payload(caplog) -> None:
    log = logging.getLogger("milestone_ledger.test")
    with caplog.at_level(logging.INFO, logger="milestone_ledger.test"):
        log.info("Milestone created", extra={"caller": "bob", "record_id": 3})

    payload = json.loads(_json_formatter(caplog.records[-1]))
    assert payload["caller"] == "bob"
    assert payload["record_id"] == 3
