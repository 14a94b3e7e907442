"""Runtime settings, read once from the environment.

Components never read the environment themselves; the application builds a
``Settings`` at startup and hands the relevant values to each constructor.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


def _env_decimal(name: str, default: str | None) -> Decimal | None:
    raw = os.environ.get(name, default)
    if raw is None or raw == "":
        return None
    return Decimal(raw)


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///storefront.db"
    checkout_timeout_ms: int = 5000
    sqlite_busy_timeout_s: float = 30.0
    pricing_policy: str = "flat"
    tax_rate: Decimal = Decimal("0")
    flat_shipping: Decimal = Decimal("0")
    free_shipping_threshold: Decimal | None = None
    order_transitions: str = "flat"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            checkout_timeout_ms=int(os.environ.get("CHECKOUT_TIMEOUT_MS", cls.checkout_timeout_ms)),
            sqlite_busy_timeout_s=float(os.environ.get("SQLITE_BUSY_TIMEOUT_S", cls.sqlite_busy_timeout_s)),
            pricing_policy=os.environ.get("PRICING_POLICY", cls.pricing_policy).lower(),
            tax_rate=_env_decimal("TAX_RATE", "0"),
            flat_shipping=_env_decimal("FLAT_SHIPPING", "0"),
            free_shipping_threshold=_env_decimal("FREE_SHIPPING_THRESHOLD", None),
            order_transitions=os.environ.get("ORDER_TRANSITIONS", cls.order_transitions).lower(),
            environment=(os.getenv("ENVIRONMENT") or os.getenv("ENV") or cls.environment).lower(),
        )
