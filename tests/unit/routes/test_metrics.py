"""
Unit tests for metrics endpoint.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hotel_booking.main import app
from hotel_booking.metrics import (
    booking_transitions,
    hold_sweep_duration,
    holds_expired,
    payment_webhook_events,
    pricing_quotes,
)


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.mark.unit
def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """Test that /metrics endpoint returns Prometheus text format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


@pytest.mark.unit
def test_metrics_endpoint_contains_booking_metrics(client: TestClient) -> None:
    """Test that /metrics endpoint includes the booking core metrics."""
    booking_transitions.labels(action="confirm", outcome="applied").inc()
    holds_expired.inc()
    hold_sweep_duration.observe(0.12)
    payment_webhook_events.labels(event_type="payment.succeeded", status="processed").inc()
    pricing_quotes.labels(status="success").inc()

    content = client.get("/metrics").text

    assert "booking_transitions_total" in content
    assert "holds_expired_total" in content
    assert "hold_sweep_duration_seconds" in content
    assert "payment_webhook_events_total" in content
    assert "pricing_quotes_total" in content


@pytest.mark.unit
def test_metrics_endpoint_includes_help_and_type_metadata(client: TestClient) -> None:
    """Test that metrics include Prometheus HELP and TYPE metadata."""
    content = client.get("/metrics").text

    assert "# HELP" in content
    assert "# TYPE" in content
