"""
Prometheus metrics for booking transitions, hold sweeps, payments and pricing.

This module defines all Prometheus metrics used throughout the application for
observability and monitoring. Metrics are exposed via the /metrics endpoint for
scraping by Prometheus.

Metric Types:
    - Counter: Cumulative metrics that only increase (e.g., total transitions)
    - Histogram: Observations bucketed by value (e.g., sweep duration)

Example:
    >>> from hotel_booking.metrics import booking_transitions, hold_sweep_duration
    >>> with hold_sweep_duration.time():
    ...     summary = sweeper.run()
    >>> booking_transitions.labels(action="confirm", outcome="applied").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Metrics
# =============================================================================

booking_transitions = Counter(
    "booking_transitions_total",
    "Guarded booking transitions by action and outcome",
    ["action", "outcome"],
)
"""
Counter for guarded booking transitions.

Labels:
    action: confirm, expire, cancel, check_in, check_out, extend_hold
    outcome: applied, noop or failed
"""

holds_created = Counter(
    "booking_holds_created_total",
    "Total number of soft holds placed",
)

holds_expired = Counter(
    "holds_expired_total",
    "Total number of soft holds expired by the sweeper",
)

hold_sweep_duration = Histogram(
    "hold_sweep_duration_seconds",
    "Duration of a hold expiration sweep in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
)

# =============================================================================
# Payment Metrics
# =============================================================================

payment_webhook_events = Counter(
    "payment_webhook_events_total",
    "Payment gateway webhook deliveries by event type and result",
    ["event_type", "status"],
)
"""
Counter for payment webhook deliveries.

Labels:
    event_type: Gateway event type (e.g. "payment.succeeded")
    status: processed, duplicate, ignored, rejected or failed
"""

payment_gateway_requests = Counter(
    "payment_gateway_requests_total",
    "Outbound payment gateway requests",
    ["status"],
)
"""
Counter for outbound gateway calls.

Labels:
    status: HTTP status code, "timeout" or "connection_error"
"""

payment_gateway_latency = Histogram(
    "payment_gateway_latency_seconds",
    "Payment gateway request latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)

# =============================================================================
# Pricing Metrics
# =============================================================================

pricing_quotes = Counter(
    "pricing_quotes_total",
    "Stay quotes computed, by result",
    ["status"],
)
"""
Counter for stay quotes.

Labels:
    status: success or the lowercased error code (e.g. "no_rate_available")
"""

rate_plan_bulk_updates = Counter(
    "rate_plan_bulk_updates_total",
    "Rate plans touched by bulk updates, by per-item result",
    ["status"],
)
