"""
Unit tests for structured logging setup.
"""

from __future__ import annotations

import json

import pytest
import structlog

from hotel_booking.config import ENVIRONMENT
from hotel_booking.logging_config import SERVICE_NAME, add_service_context, setup_logging


@pytest.mark.unit
def test_service_context_does_not_override_explicit_values() -> None:
    event = add_service_context(None, "info", {"event": "x", "service": "worker"})

    assert event["service"] == "worker"
    assert event["environment"] == ENVIRONMENT


@pytest.mark.unit
def test_info_level_emits_json_with_bound_context(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging("INFO")
    structlog.contextvars.bind_contextvars(request_id="req-1")
    try:
        structlog.get_logger("test").info("hold_created", booking_id="bk-1")
    finally:
        structlog.contextvars.clear_contextvars()

    line = capsys.readouterr().out.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "hold_created"
    assert event["booking_id"] == "bk-1"
    assert event["request_id"] == "req-1"
    assert event["service"] == SERVICE_NAME
    assert event["level"] == "info"
