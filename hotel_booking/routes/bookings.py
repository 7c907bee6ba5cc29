"""Booking lifecycle routes: holds, cancellation, check-in/out and payment intents."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from hotel_booking.dependencies import (
    get_db_engine,
    get_gateway_client,
    get_pricing_calculator,
    get_state_machine,
)
from hotel_booking.errors import BookingNotFound, BookingServiceError
from hotel_booking.models.bookings import BookingStatus
from hotel_booking.network.gateway import PaymentGatewayClient
from hotel_booking.routes._helpers import error_body, error_response, outcome_body
from hotel_booking.schemas.bookings import (
    CancelPayload,
    ExtendHoldPayload,
    HoldCreatePayload,
    TransitionOutcome,
)
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.services.pricing import PricingCalculator, quote_stay

logger = structlog.get_logger(__name__)
router = APIRouter()


def _outcome_response(outcome: TransitionOutcome) -> JSONResponse:
    """200 when the transition applied, 409 when the booking was not in a state that allows it."""
    if outcome.applied:
        return JSONResponse(content=outcome_body(outcome))
    if outcome.ok:
        action = outcome.action.replace("_", " ")
        message = outcome.error or f"Booking cannot {action} from its current status"
        body = outcome_body(outcome)
        body.update(error_body("INVALID_TRANSITION", message))
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("TRANSITION_FAILED", "Internal server error"),
    )


def _require_booking(state_machine: BookingStateMachine, booking_id: str) -> None:
    if state_machine.get(booking_id) is None:
        raise BookingNotFound(f"Booking {booking_id} not found")


@router.post("/bookings", status_code=status.HTTP_201_CREATED, response_model=None)
def create_booking(
    payload: HoldCreatePayload,
    db_engine: Engine = Depends(get_db_engine),
    calculator: PricingCalculator = Depends(get_pricing_calculator),
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    """
    Price the stay and place a soft hold on a room.

    The quote is always computed fresh here; a client-supplied price is never
    trusted. The hold lasts HOLD_DURATION_MINUTES unless hold_minutes is given.
    """
    try:
        quote = quote_stay(
            db_engine,
            calculator,
            payload.room_type_id,
            payload.check_in,
            payload.check_out,
            payload.guests,
            clock=state_machine.clock,
        )
        hold_duration = (
            timedelta(minutes=payload.hold_minutes) if payload.hold_minutes is not None else None
        )
        booking = state_machine.create_hold(quote, payload.guest, hold_duration)
    except BookingServiceError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("booking_creation_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return JSONResponse(status_code=status.HTTP_201_CREATED, content=booking.model_dump(mode="json"))


@router.get("/bookings/confirmation/{code}", response_model=None)
def get_booking_by_code(
    code: str,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    booking = state_machine.get_by_confirmation_code(code)
    if booking is None:
        return error_response(BookingNotFound(f"No booking with confirmation code {code}"))
    return booking.model_dump(mode="json")


@router.get("/bookings/{booking_id}", response_model=None)
def get_booking(
    booking_id: str,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    booking = state_machine.get(booking_id)
    if booking is None:
        return error_response(BookingNotFound(f"Booking {booking_id} not found"))
    return booking.model_dump(mode="json")


@router.post("/bookings/{booking_id}/cancel", response_model=None)
def cancel_booking(
    booking_id: str,
    payload: CancelPayload,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    try:
        outcome = state_machine.cancel(booking_id, payload.reason)
    except BookingServiceError as e:
        return error_response(e)
    return _outcome_response(outcome)


@router.post("/bookings/{booking_id}/check-in", response_model=None)
def check_in_booking(
    booking_id: str,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    try:
        _require_booking(state_machine, booking_id)
        outcome = state_machine.check_in(booking_id)
    except BookingServiceError as e:
        return error_response(e)
    return _outcome_response(outcome)


@router.post("/bookings/{booking_id}/check-out", response_model=None)
def check_out_booking(
    booking_id: str,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    try:
        _require_booking(state_machine, booking_id)
        outcome = state_machine.check_out(booking_id)
    except BookingServiceError as e:
        return error_response(e)
    return _outcome_response(outcome)


@router.post("/bookings/{booking_id}/extend-hold", response_model=None)
def extend_hold(
    booking_id: str,
    payload: ExtendHoldPayload,
    state_machine: BookingStateMachine = Depends(get_state_machine),
) -> Any:
    try:
        outcome = state_machine.extend_hold(booking_id, payload.additional_minutes)
    except BookingServiceError as e:
        return error_response(e)
    return _outcome_response(outcome)


@router.post("/bookings/{booking_id}/payment-intent", response_model=None)
def create_payment_intent(
    booking_id: str,
    state_machine: BookingStateMachine = Depends(get_state_machine),
    gateway: PaymentGatewayClient = Depends(get_gateway_client),
) -> Any:
    """
    Ask the gateway for a payment intent covering a pending booking.

    The booking stays pending; it is confirmed only when the gateway's signed
    payment.succeeded webhook arrives. A gateway failure leaves the booking
    untouched and returns 502.
    """
    booking = state_machine.get(booking_id)
    if booking is None:
        return error_response(BookingNotFound(f"Booking {booking_id} not found"))
    if booking.status != BookingStatus.PENDING.value:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body(
                "INVALID_TRANSITION",
                f"Payment can only be started for a pending booking (status is {booking.status})",
            ),
        )

    try:
        intent = gateway.create_payment_intent(booking)
    except BookingServiceError as e:
        return error_response(e)

    if not state_machine.record_payment_intent(booking_id, intent.reference):
        logger.warning(
            "payment_intent_for_resolved_booking",
            booking_id=booking_id,
            reference=intent.reference,
        )

    return {
        "bookingId": booking_id,
        "paymentReference": intent.reference,
        "clientSecret": intent.client_secret,
        "amountCents": booking.total_cents,
        "currency": booking.currency,
    }
