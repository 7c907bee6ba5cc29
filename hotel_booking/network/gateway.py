"""
Client for the outbound payment gateway.

The gateway is only asked to create payment intents. A booking is never marked
paid from here: payment success arrives later as a signed webhook.
"""

import time
from typing import Any, Optional, cast

import requests
import structlog
from pydantic import BaseModel

from hotel_booking.config import GatewaySettings
from hotel_booking.errors import ExternalServiceError
from hotel_booking.metrics import payment_gateway_latency, payment_gateway_requests
from hotel_booking.schemas.bookings import BookingView

logger = structlog.get_logger(__name__)

MAX_RETRIES = 2
RETRY_DELAY_SECONDS = 0.5


class PaymentIntent(BaseModel):
    reference: str
    client_secret: Optional[str] = None


def is_retryable(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Whether a failed gateway call has an unknown outcome and may be retried.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True for timeouts, connection errors, 429 and 5xx responses.
    """
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    if res is not None and (res.status_code == 429 or 500 <= res.status_code < 600):
        return True
    return False


class PaymentGatewayClient:
    def __init__(self, settings: GatewaySettings) -> None:
        self.settings = settings

    def create_payment_intent(self, booking: BookingView) -> PaymentIntent:
        """
        Create a payment intent for a pending booking's total.

        Args:
            booking: Booking to charge

        Returns:
            PaymentIntent: Gateway reference and client secret for the checkout

        Raises:
            ExternalServiceError: On timeout, connection failure or a gateway error
                response once retries are exhausted; the booking is left untouched
        """
        url = f"{self.settings.base_url.rstrip('/')}/payment_intents"
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Idempotency-Key": f"booking-{booking.id}",
        }
        body: dict[str, Any] = {
            "amount": booking.total_cents,
            "currency": booking.currency.lower(),
            "metadata": {
                "booking_id": booking.id,
                "confirmation_code": booking.confirmation_code,
            },
        }

        retries = 0
        while True:
            res: Optional[requests.Response] = None
            err: Optional[Exception] = None
            start_time = time.time()
            try:
                res = requests.post(
                    url, json=body, headers=headers, timeout=self.settings.timeout_seconds
                )
                payment_gateway_requests.labels(status=str(res.status_code)).inc()
            except requests.Timeout as e:
                payment_gateway_requests.labels(status="timeout").inc()
                err = e
            except requests.RequestException as e:
                payment_gateway_requests.labels(status="connection_error").inc()
                err = e
            finally:
                payment_gateway_latency.observe(time.time() - start_time)

            if res is not None and res.status_code < 400:
                break

            retryable = is_retryable(res, err)
            logger.warning(
                "payment_gateway_request_failed",
                booking_id=booking.id,
                status_code=res.status_code if res is not None else None,
                error=str(err) if err else None,
                attempt=retries + 1,
                retryable=retryable,
            )
            retries += 1
            if not retryable or retries > MAX_RETRIES:
                if res is not None:
                    raise ExternalServiceError(f"Payment gateway returned {res.status_code}")
                raise ExternalServiceError("Payment gateway unreachable") from err
            time.sleep(RETRY_DELAY_SECONDS * retries)

        try:
            data = cast(dict[str, Any], res.json())
            intent = PaymentIntent(reference=data["id"], client_secret=data.get("client_secret"))
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalServiceError("Payment gateway returned an unreadable response") from e

        logger.info("payment_intent_created", booking_id=booking.id, reference=intent.reference)
        return intent
