"""Route fixtures: the real app wired to the per-test database and clock."""

from __future__ import annotations

from typing import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from hotel_booking.config import WebhookSettings
from hotel_booking.dependencies import (
    get_clock,
    get_db_engine,
    get_gateway_client,
    get_state_machine,
    get_webhook_settings,
)
from hotel_booking.main import app
from hotel_booking.network.gateway import PaymentGatewayClient
from hotel_booking.services.booking_state import BookingStateMachine

from helpers import FakeClock

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture
def gateway() -> Mock:
    return Mock(spec=PaymentGatewayClient)


@pytest.fixture
def wired_app(
    engine: Engine, state_machine: BookingStateMachine, gateway: Mock, clock: FakeClock
) -> Generator[object, None, None]:
    """The app with its engine, clock, state machine, webhook secret and gateway replaced."""
    app.dependency_overrides[get_db_engine] = lambda: engine
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_state_machine] = lambda: state_machine
    app.dependency_overrides[get_webhook_settings] = lambda: WebhookSettings(secret=WEBHOOK_SECRET)
    app.dependency_overrides[get_gateway_client] = lambda: gateway
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(wired_app: object) -> TestClient:
    return TestClient(app)
