"""Tests for environment settings and the error taxonomy."""

from decimal import Decimal

from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.config import Settings
from shared.errors import (
    EmptyCart,
    FulfillmentUnavailable,
    InsufficientStock,
    InvalidAddress,
    InvalidStatus,
    OrderAccessDenied,
    OrderNotFound,
)


class TestSettingsFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "DATABASE_URL",
            "CHECKOUT_TIMEOUT_MS",
            "PRICING_POLICY",
            "TAX_RATE",
            "FLAT_SHIPPING",
            "FREE_SHIPPING_THRESHOLD",
            "ORDER_TRANSITIONS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.database_url == "sqlite:///storefront.db"
        assert settings.checkout_timeout_ms == 5000
        assert settings.pricing_policy == "flat"
        assert settings.tax_rate == Decimal("0")
        assert settings.free_shipping_threshold is None
        assert settings.order_transitions == "flat"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://shop@db/shop")
        monkeypatch.setenv("CHECKOUT_TIMEOUT_MS", "250")
        monkeypatch.setenv("PRICING_POLICY", "Percentage")
        monkeypatch.setenv("TAX_RATE", "0.08")
        monkeypatch.setenv("FREE_SHIPPING_THRESHOLD", "75")
        monkeypatch.setenv("ORDER_TRANSITIONS", "GRAPH")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings.from_env()

        assert settings.database_url == "postgresql://shop@db/shop"
        assert settings.checkout_timeout_ms == 250
        assert settings.pricing_policy == "percentage"
        assert settings.tax_rate == Decimal("0.08")
        assert settings.free_shipping_threshold == Decimal("75")
        assert settings.order_transitions == "graph"
        assert settings.environment == "production"


class TestErrors:
    def test_rejections_are_validation_errors(self):
        for error in (
            EmptyCart(1),
            InsufficientStock(3, 2),
            InvalidAddress("shipping_address_id", 9),
            InvalidStatus("lost", ["pending"]),
        ):
            assert isinstance(error, ValidationError)
            assert error.http_status == 400
            assert error.messages

    def test_missing_order_is_not_found(self):
        error = OrderNotFound(7)
        assert isinstance(error, ObjectNotFoundError)
        assert error.http_status == 404
        assert error.details == {"order_id": 7}

    def test_insufficient_stock_details(self):
        error = InsufficientStock(3, 2, requested=5, product_name="Teapot")
        assert str(error) == "Not enough stock for Teapot. Available: 2"
        assert error.code == "insufficient_stock"
        assert error.details == {"product_id": 3, "available": 2, "requested": 5}

    def test_insufficient_stock_without_name(self):
        assert str(InsufficientStock(3, 0)) == "Not enough stock for product 3. Available: 0"

    def test_access_denied(self):
        assert OrderAccessDenied(4).http_status == 403

    def test_fulfillment_unavailable_is_retryable(self):
        cause = RuntimeError("disk")
        error = FulfillmentUnavailable(cause=cause)
        assert error.retryable
        assert error.cause is cause
        assert str(error) == "Checkout failed"
        assert error.http_status == 500
