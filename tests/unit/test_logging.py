"""
Unit tests for logging configuration.
"""

import io
import json
import logging

import pytest

from scepserver.core.logging import (
    InterceptHandler,
    add_trace_id,
    configure_logger,
    intercept_standard_logging,
    logger,
)
from scepserver.core.trace_context import trace_id_context


@pytest.fixture
def sink():
    """In-memory sink; restores default loguru handler afterwards."""
    buffer = io.StringIO()
    yield buffer
    configure_logger()


def test_add_trace_id_without_context():
    """Test the placeholder used outside requests."""
    record = {"extra": {}}

    assert add_trace_id(record) is True
    assert record["extra"]["trace_id"] == "N/A"


def test_add_trace_id_with_context():
    """Test that the current trace id is attached."""
    record = {"extra": {}}
    token = trace_id_context.set("trace-123")
    try:
        add_trace_id(record)
    finally:
        trace_id_context.reset(token)

    assert record["extra"]["trace_id"] == "trace-123"


def test_configure_logger_info_level(sink):
    """Test that debug records are dropped by default."""
    configure_logger(sink=sink)

    logger.debug("hidden message")
    logger.info("visible message")

    output = sink.getvalue()
    assert "visible message" in output
    assert "hidden message" not in output
    assert "trace_id=N/A" in output


def test_configure_logger_debug_level(sink):
    """Test that debug records are emitted when enabled."""
    configure_logger(debug=True, sink=sink)

    logger.debug("debug message")

    assert "debug message" in sink.getvalue()


def test_configure_logger_json_output(sink):
    """Test that records are serialized one JSON object per line."""
    configure_logger(json_output=True, sink=sink)

    logger.bind(component="scep_signer").info("json message")

    record = json.loads(sink.getvalue().splitlines()[0])
    assert record["record"]["message"] == "json message"
    assert record["record"]["extra"]["component"] == "scep_signer"
    assert record["record"]["extra"]["trace_id"] == "N/A"


def test_intercept_standard_logging(sink):
    """Test that standard library records reach loguru."""
    configure_logger(sink=sink)
    intercept_standard_logging()

    logging.getLogger("uvicorn.error").info("from uvicorn")

    assert "from uvicorn" in sink.getvalue()
    assert isinstance(logging.getLogger("uvicorn").handlers[0], InterceptHandler)
    assert logging.getLogger("uvicorn").propagate is False
