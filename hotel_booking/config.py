import os
from dataclasses import dataclass, field
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

# Shared secret for the scheduled hold sweep trigger
CRON_SECRET = os.getenv("CRON_SECRET")

# Payment gateway webhooks
PAYMENT_WEBHOOK_SECRET = os.getenv("PAYMENT_WEBHOOK_SECRET", "")
WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300"))

# Outbound payment gateway
PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "https://api.payments.example.com/v1")
PAYMENT_GATEWAY_API_KEY = os.getenv("PAYMENT_GATEWAY_API_KEY", "")
PAYMENT_GATEWAY_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT_SECONDS", "10"))

# Soft holds
HOLD_DURATION_MINUTES = int(os.getenv("HOLD_DURATION_MINUTES", "15"))

# Pricing
TAX_RATE = os.getenv("TAX_RATE", "0.10")
SERVICE_FEE_CENTS = int(os.getenv("SERVICE_FEE_CENTS", "2000"))
LOS_DISCOUNT_TIERS = os.getenv("LOS_DISCOUNT_TIERS", "7:15,3:5")


def parse_discount_tiers(raw: str) -> tuple[tuple[int, Decimal], ...]:
    """
    Parse "min_nights:percent" pairs into (min_nights, fraction) tuples.

    Tiers are returned longest stay first so the first match wins.

    Example:
        >>> parse_discount_tiers("7:15,3:5")
        ((7, Decimal('0.15')), (3, Decimal('0.05')))
    """
    tiers: list[tuple[int, Decimal]] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        nights, percent = chunk.split(":", 1)
        tiers.append((int(nights), Decimal(percent.strip()) / Decimal(100)))
    return tuple(sorted(tiers, key=lambda tier: tier[0], reverse=True))


@dataclass(frozen=True)
class PricingSettings:
    """Constants applied by the pricing calculator."""

    tax_rate: Decimal = Decimal("0.10")
    service_fee_cents: int = 2000
    discount_tiers: tuple[tuple[int, Decimal], ...] = field(
        default=((7, Decimal("0.15")), (3, Decimal("0.05")))
    )
    currency: str = "USD"


@dataclass(frozen=True)
class HoldSettings:
    """Soft hold durations, in minutes."""

    default_minutes: int = 15
    min_minutes: int = 1
    max_minutes: int = 60
    max_extension_minutes: int = 30


@dataclass(frozen=True)
class WebhookSettings:
    secret: str
    tolerance_seconds: int = 300


@dataclass(frozen=True)
class GatewaySettings:
    base_url: str
    api_key: str
    timeout_seconds: float = 10.0


def load_pricing_settings() -> PricingSettings:
    return PricingSettings(
        tax_rate=Decimal(TAX_RATE),
        service_fee_cents=SERVICE_FEE_CENTS,
        discount_tiers=parse_discount_tiers(LOS_DISCOUNT_TIERS),
    )


def load_hold_settings() -> HoldSettings:
    return HoldSettings(default_minutes=HOLD_DURATION_MINUTES)


def load_webhook_settings() -> WebhookSettings:
    return WebhookSettings(
        secret=PAYMENT_WEBHOOK_SECRET,
        tolerance_seconds=WEBHOOK_TOLERANCE_SECONDS,
    )


def load_gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        base_url=PAYMENT_GATEWAY_URL,
        api_key=PAYMENT_GATEWAY_API_KEY,
        timeout_seconds=PAYMENT_GATEWAY_TIMEOUT_SECONDS,
    )
