"""
Verification of signed payment gateway webhooks.

The gateway signs each delivery with a header of the form::

    Payment-Signature: t=1767225600,v1=5257a869e7ecebeda32affa62cdca3fa51cad7e77a0e56ff536d0ce8e108d8bd

where v1 is the hex HMAC-SHA256 of "<t>.<raw body>" keyed with the shared
webhook secret. Several v1 entries may be present while the secret is rotated.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime
from typing import Optional

from hotel_booking.errors import SignatureVerificationError
from hotel_booking.utils.datetime import utc_now

SIGNATURE_SCHEME = "v1"


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def build_signature_header(payload: bytes, timestamp: int, secret: str) -> str:
    """Produce a header value the way the gateway does (used by tests and tooling)."""
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(payload, timestamp, secret)}"


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp: Optional[int] = None
    signatures: list[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise SignatureVerificationError("Malformed signature timestamp") from None
        elif key == SIGNATURE_SCHEME:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise SignatureVerificationError("Malformed signature header")
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance_seconds: int = 300,
    now: Optional[datetime] = None,
) -> int:
    """
    Check a webhook delivery's signature and freshness.

    Args:
        payload: Raw request body, exactly as received
        header: Signature header value
        secret: Shared webhook secret
        tolerance_seconds: Maximum accepted age (or clock skew) of the timestamp
        now: Current time (defaults to utc_now())

    Returns:
        int: The verified signature timestamp

    Raises:
        SignatureVerificationError: If the header is missing or malformed, the
            timestamp is outside the tolerance, or no signature matches
    """
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")
    if not header:
        raise SignatureVerificationError("Missing signature header")

    timestamp, signatures = _parse_header(header)

    current = int((now or utc_now()).timestamp())
    if abs(current - timestamp) > tolerance_seconds:
        raise SignatureVerificationError("Signature timestamp outside tolerance")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationError("Signature mismatch")

    return timestamp
