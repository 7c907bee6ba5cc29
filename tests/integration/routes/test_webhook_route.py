"""
Integration tests for the signed payment webhook endpoint.
"""

from __future__ import annotations

import json
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from hotel_booking.models.payments import WebhookEvent
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.services.webhook_signature import build_signature_header

from helpers import FakeClock, Seeder

WEBHOOK_SECRET = "whsec_test"
URL = "/webhooks/payments"


def succeeded_body(booking_id: str, amount: int, event_id: str = "evt_1") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "type": "payment.succeeded",
            "data": {
                "object": {
                    "id": "pi_123",
                    "amount": amount,
                    "currency": "usd",
                    "metadata": {"booking_id": booking_id},
                }
            },
        }
    ).encode()


def signed(body: bytes, clock: FakeClock, secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    return {
        "Payment-Signature": build_signature_header(body, int(clock.now.timestamp()), secret),
        "Content-Type": "application/json",
    }


async def post(app: Any, body: bytes, headers: dict[str, str]) -> Any:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.post(URL, content=body, headers=headers)


@pytest.fixture(autouse=True)
def hotel(seed: Seeder) -> dict[str, Any]:
    return seed.standard_hotel(rooms=1)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_success_confirms_booking(
    wired_app: Any, make_hold: Any, clock: FakeClock, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()
    body = succeeded_body(booking.id, booking.total_cents)

    response = await post(wired_app, body, signed(body, clock))

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "processed"}
    current = state_machine.get(booking.id)
    assert current is not None
    assert current.status == "confirmed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_redelivery_is_acknowledged_as_duplicate(
    wired_app: Any, make_hold: Any, clock: FakeClock, engine: Engine
) -> None:
    booking = make_hold()
    body = succeeded_body(booking.id, booking.total_cents)

    await post(wired_app, body, signed(body, clock))
    response = await post(wired_app, body, signed(body, clock))

    assert response.status_code == 200
    assert response.json()["status"] == "duplicate"
    with engine.connect() as conn:
        audited = conn.execute(select(func.count()).select_from(WebhookEvent)).scalar_one()
    assert audited == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bad_signature_is_rejected_without_side_effects(
    wired_app: Any, make_hold: Any, clock: FakeClock, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()
    body = succeeded_body(booking.id, booking.total_cents)

    response = await post(wired_app, body, signed(body, clock, secret="whsec_wrong"))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
    current = state_machine.get(booking.id)
    assert current is not None
    assert current.status == "pending"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_signature_is_rejected(wired_app: Any) -> None:
    response = await post(wired_app, b"{}", {"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_SIGNATURE"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_signature_is_rejected(
    wired_app: Any, make_hold: Any, clock: FakeClock
) -> None:
    booking = make_hold()
    body = succeeded_body(booking.id, booking.total_cents)
    headers = signed(body, clock)
    clock.advance(minutes=6)

    response = await post(wired_app, body, headers)

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "body,code",
    [
        (b"not json", "INVALID_JSON"),
        (b'{"type": "payment.succeeded"}', "INVALID_EVENT"),
        (b"[1, 2]", "INVALID_EVENT"),
    ],
)
async def test_malformed_payloads_are_400(
    wired_app: Any, clock: FakeClock, body: bytes, code: str
) -> None:
    response = await post(wired_app, body, signed(body, clock))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == code


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_event_type_is_acknowledged(wired_app: Any, clock: FakeClock) -> None:
    body = b'{"id": "evt_5", "type": "customer.updated"}'

    response = await post(wired_app, body, signed(body, clock))

    assert response.status_code == 200
    assert response.json() == {"received": True, "status": "ignored"}
