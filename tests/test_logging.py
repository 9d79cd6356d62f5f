"""
Logging tests

Context propagation and the structured extra fields.
"""

import orjson
import pytest
from loguru import logger

from energy_flow.common.logging import (
    _json_format,
    configure_logging,
    current_context,
    get_logger,
    log_context,
    new_trace_id,
)


@pytest.fixture
def captured(monkeypatch):
    for key in ("LOG_LEVEL", "LOG_FORMAT", "LOG_FILE"):
        monkeypatch.delenv(key, raising=False)
    configure_logging(level="DEBUG")
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


def test_trace_id_shape():
    first, second = new_trace_id(), new_trace_id()
    assert len(first) == 12
    assert first != second


def test_log_context_nests_and_resets():
    assert current_context() == {}

    with log_context(trace_id="abc"):
        with log_context(module_name="charts"):
            assert current_context() == {"trace_id": "abc", "module_name": "charts"}
        with log_context(trace_id=None):
            assert current_context() == {}
        assert current_context() == {"trace_id": "abc"}

    assert current_context() == {}


def test_records_carry_context_and_fields(captured):
    with log_context(module_name="charts", flow_id="energy-tracking→charts"):
        get_logger("tests.logging").info("모듈 로드", loaded_count=2)

    extra = captured[-1]["extra"]
    assert extra["logger_name"] == "tests.logging"
    assert extra["module_name"] == "charts"
    assert extra["flow_id"] == "energy-tracking→charts"
    assert extra["loaded_count"] == 2
    assert "module=charts" in extra["context_tag"]


def test_braces_in_message_are_not_formatted(captured):
    get_logger("tests.logging").warning("payload {level: 7}", source="charts")

    assert captured[-1]["message"] == "payload {level: 7}"


def test_json_format(captured):
    with log_context(trace_id="t-1"):
        get_logger("tests.logging").error("흐름 오류", target="pwa")

    record = captured[-1]
    assert _json_format(record) == "{extra[_json]}\n"

    entry = orjson.loads(record["extra"]["_json"])
    assert entry["level"] == "ERROR"
    assert entry["logger"] == "tests.logging"
    assert entry["message"] == "흐름 오류"
    assert entry["trace_id"] == "t-1"
    assert entry["target"] == "pwa"
    assert "context_tag" not in entry
