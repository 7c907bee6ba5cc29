"""Payment gateway webhook receiver route."""

import json
from typing import Any

import pydantic
import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from hotel_booking.config import WebhookSettings
from hotel_booking.dependencies import get_payment_reconciler, get_webhook_settings
from hotel_booking.errors import SignatureVerificationError
from hotel_booking.metrics import payment_webhook_events
from hotel_booking.routes._helpers import error_body
from hotel_booking.schemas.payment_events import parse_payment_event
from hotel_booking.services.payment_reconciler import PaymentEventReconciler
from hotel_booking.services.webhook_signature import verify_signature

router = APIRouter()
logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "Payment-Signature"


@router.post("/webhooks/payments")
async def receive_payment_webhook(
    request: Request,
    settings: WebhookSettings = Depends(get_webhook_settings),
    reconciler: PaymentEventReconciler = Depends(get_payment_reconciler),
) -> JSONResponse:
    """
    Handle incoming payment gateway events.

    Supported event types:
    - payment.succeeded / payment_intent.succeeded: confirm the booking
    - payment.failed / payment_intent.payment_failed: record the failed attempt

    Other event types are acknowledged and ignored.

    Authentication: HMAC-SHA256 signature in the Payment-Signature header,
    computed over the raw body with PAYMENT_WEBHOOK_SECRET.

    Status codes drive the gateway's redelivery:
    - 400: bad signature or malformed payload; the gateway does not retry
    - 500: processing failed after verification; the gateway redelivers
    - 200: handled (including duplicates and ignored events)

    Args:
        request: FastAPI request containing the signed event

    Returns:
        JSONResponse: {"received": true, "status": ...} on success
    """
    body = await request.body()

    try:
        verify_signature(
            body,
            request.headers.get(SIGNATURE_HEADER),
            settings.secret,
            settings.tolerance_seconds,
            now=reconciler.clock(),
        )
    except SignatureVerificationError as e:
        logger.warning("payment_webhook_signature_rejected", reason=e.message)
        payment_webhook_events.labels(event_type="unknown", status="rejected").inc()
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(e.code, e.message),
        )

    try:
        payload: dict[str, Any] = json.loads(body)
    except ValueError:
        logger.exception("payment_webhook_invalid_json")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("INVALID_JSON", "Invalid JSON"),
        )

    try:
        event = parse_payment_event(payload)
    except (pydantic.ValidationError, TypeError) as e:
        logger.warning(
            "payment_webhook_malformed_event",
            event_type=payload.get("type") if isinstance(payload, dict) else None,
            error=str(e),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("INVALID_EVENT", "Malformed payment event"),
        )

    logger.info(
        "payment_webhook_received",
        event_id=event.event_id,
        event_type=event.event_type,
        booking_id=getattr(event, "booking_id", None),
    )

    try:
        result = reconciler.handle(event)
    except Exception as e:
        logger.exception(
            "payment_webhook_processing_failed",
            event_id=event.event_id,
            event_type=event.event_type,
            error=str(e),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("PROCESSING_FAILED", "Internal server error"),
        )

    return JSONResponse(content={"received": True, "status": result.status})
