"""Relational storage for the storefront.

A ``Store`` is the single storage handle of a process: one SQLAlchemy engine
plus the table metadata. It is built at startup and passed into every
component that reads or writes; nothing in the codebase reaches for a global
connection.

Only the checkout coordinator opens multi-statement transactions, through
``Store.transaction()``. Everything else uses ``Store.connect()`` (reads) or
``Store.begin()`` (single-purpose writes).
"""

import time
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeDecorator

from shared.config import Settings
from shared.errors import FulfillmentUnavailable
from shared.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize any numeric input to two decimal places, rounding half-up."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    return datetime.now(UTC)


class Money(TypeDecorator):
    """Decimal amounts persisted as integer minor units (cents)."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(to_money(value).scaleb(2))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2).quantize(CENTS)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
metadata = MetaData()

addresses = Table(
    "addresses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("type", String(20), nullable=False, default="both"),
    Column("street", String(255), nullable=False),
    Column("city", String(100), nullable=False),
    Column("state", String(100)),
    Column("postal_code", String(20), nullable=False),
    Column("country", String(100), nullable=False),
    Column("is_default", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("price", Money, nullable=False),
    Column("stock_quantity", Integer, nullable=False, default=0),
    Column("image_url", String(500)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow),
    CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
)

cart_items = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
    CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("shipping_address_id", Integer, ForeignKey("addresses.id")),
    Column("billing_address_id", Integer, ForeignKey("addresses.id")),
    Column("status", String(20), nullable=False, default="pending"),
    Column("subtotal", Money, nullable=False),
    Column("tax", Money, nullable=False),
    Column("shipping_cost", Money, nullable=False),
    Column("total", Money, nullable=False),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Money, nullable=False),
    Column("total_price", Money, nullable=False),
)


# ---------------------------------------------------------------------------
# Storage handle
# ---------------------------------------------------------------------------
class Store:
    """Process-lifetime storage handle."""

    def __init__(self, engine, transaction_timeout_ms=5000):
        self.engine = engine
        self.metadata = metadata
        self.transaction_timeout_ms = transaction_timeout_ms

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def connect(self):
        """Read-only connection; storage faults surface as ``FulfillmentUnavailable``."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("storage_read_failed", error=str(exc))
            raise FulfillmentUnavailable("Storage unavailable", cause=exc) from exc

    @contextmanager
    def begin(self):
        """Single-purpose write transaction, committed when the block exits cleanly."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("storage_write_failed", error=str(exc))
            raise FulfillmentUnavailable("Storage unavailable", cause=exc) from exc

    @contextmanager
    def transaction(self):
        """Open a bounded, all-or-nothing transaction.

        Any exception inside the block rolls back every write made through
        the yielded connection. Overrunning ``transaction_timeout_ms`` is an
        abort, never a partial commit.
        """
        started = time.monotonic()
        try:
            with self.engine.begin() as conn:
                if self.dialect == "postgresql":
                    conn.execute(text(f"SET LOCAL statement_timeout = {int(self.transaction_timeout_ms)}"))
                yield conn
                elapsed_ms = (time.monotonic() - started) * 1000
                if elapsed_ms > self.transaction_timeout_ms:
                    logger.warning(
                        "transaction_timeout",
                        elapsed_ms=round(elapsed_ms, 1),
                        limit_ms=self.transaction_timeout_ms,
                    )
                    raise FulfillmentUnavailable("Checkout timed out")
        except SQLAlchemyError as exc:
            logger.error("transaction_failed", error=str(exc))
            raise FulfillmentUnavailable(cause=exc) from exc

    def dispose(self):
        self.engine.dispose()


def create_store(settings: Settings) -> Store:
    """Build the storage handle described by ``settings``."""
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args = {
            "timeout": settings.sqlite_busy_timeout_s,
            "check_same_thread": False,
        }
    engine = create_engine(settings.database_url, connect_args=connect_args)
    return Store(engine, transaction_timeout_ms=settings.checkout_timeout_ms)


def setup_db(store: Store):
    """Create the schema."""
    store.metadata.create_all(store.engine)


def drop_db(store: Store):
    """Drop the schema."""
    store.metadata.drop_all(store.engine)
