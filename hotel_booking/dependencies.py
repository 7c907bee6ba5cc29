"""
FastAPI dependency injection providers.

Routes receive the engine and every booking component through these providers
instead of importing module-level singletons, so tests can swap any of them
with app.dependency_overrides (e.g. an in-memory SQLite engine or a fixed
clock).
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Generator

from fastapi import Depends
from sqlalchemy.engine import Engine

from hotel_booking.config import (
    GatewaySettings,
    HoldSettings,
    PricingSettings,
    WebhookSettings,
    load_gateway_settings,
    load_hold_settings,
    load_pricing_settings,
    load_webhook_settings,
)
from hotel_booking.db.engine import engine
from hotel_booking.network.gateway import PaymentGatewayClient
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.services.bulk_rates import BulkRateUpdater
from hotel_booking.services.hold_sweeper import HoldExpirationSweeper
from hotel_booking.services.payment_reconciler import PaymentEventReconciler
from hotel_booking.services.pricing import PricingCalculator
from hotel_booking.utils.datetime import utc_now


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> test_engine = create_engine("sqlite://", poolclass=StaticPool)
        >>> app.dependency_overrides[get_db_engine] = lambda: test_engine
    """
    yield engine


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_pricing_settings() -> PricingSettings:
    return load_pricing_settings()


def get_hold_settings() -> HoldSettings:
    return load_hold_settings()


def get_webhook_settings() -> WebhookSettings:
    return load_webhook_settings()


def get_gateway_settings() -> GatewaySettings:
    return load_gateway_settings()


def get_pricing_calculator(
    settings: PricingSettings = Depends(get_pricing_settings),
) -> PricingCalculator:
    return PricingCalculator(settings)


def get_state_machine(
    db_engine: Engine = Depends(get_db_engine),
    settings: HoldSettings = Depends(get_hold_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> BookingStateMachine:
    return BookingStateMachine(db_engine, settings, clock=clock)


def get_hold_sweeper(
    db_engine: Engine = Depends(get_db_engine),
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> HoldExpirationSweeper:
    return HoldExpirationSweeper(db_engine, state_machine, clock=state_machine.clock)


def get_payment_reconciler(
    db_engine: Engine = Depends(get_db_engine),
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> PaymentEventReconciler:
    return PaymentEventReconciler(db_engine, state_machine, clock=state_machine.clock)


def get_bulk_rate_updater(db_engine: Engine = Depends(get_db_engine)) -> BulkRateUpdater:
    return BulkRateUpdater(db_engine)


def get_gateway_client(
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> PaymentGatewayClient:
    return PaymentGatewayClient(settings)
