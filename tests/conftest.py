import os
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import insert, select

from ordering.services import build_services
from shared.config import Settings
from shared.storage import addresses, cart_items, create_store, drop_db, products, setup_db


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    os.environ["ENVIRONMENT"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture
def settings(tmp_path):
    return Settings(database_url=f"sqlite:///{tmp_path / 'storefront.db'}", environment="test")


@pytest.fixture
def store(settings):
    """A fresh file-backed SQLite store per test."""
    store = create_store(settings)
    setup_db(store)

    yield store

    drop_db(store)
    store.dispose()


@pytest.fixture
def services(store, settings):
    return build_services(store, settings)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------
@pytest.fixture
def make_product(store):
    def _make_product(name="Widget", price="10.00", stock=5, is_active=True, image_url=None):
        with store.begin() as conn:
            result = conn.execute(
                insert(products).values(
                    name=name,
                    price=Decimal(price),
                    stock_quantity=stock,
                    is_active=is_active,
                    image_url=image_url,
                )
            )
            return result.inserted_primary_key[0]

    return _make_product


@pytest.fixture
def make_address(store):
    def _make_address(user_id, street="1 Main St", city="Springfield", country="US"):
        with store.begin() as conn:
            result = conn.execute(
                insert(addresses).values(
                    user_id=user_id,
                    type="both",
                    street=street,
                    city=city,
                    postal_code="00000",
                    country=country,
                )
            )
            return result.inserted_primary_key[0]

    return _make_address


@pytest.fixture
def put_in_cart(store):
    """Insert a cart line directly, bypassing the write-time stock check."""

    def _put_in_cart(user_id, product_id, quantity):
        with store.begin() as conn:
            result = conn.execute(insert(cart_items).values(user_id=user_id, product_id=product_id, quantity=quantity))
            return result.inserted_primary_key[0]

    return _put_in_cart


@pytest.fixture
def stock_of(store):
    def _stock_of(product_id):
        with store.connect() as conn:
            return conn.execute(select(products.c.stock_quantity).where(products.c.id == product_id)).scalar_one()

    return _stock_of


@pytest.fixture
def cart_of(store):
    def _cart_of(user_id):
        with store.connect() as conn:
            rows = conn.execute(
                select(cart_items.c.product_id, cart_items.c.quantity)
                .where(cart_items.c.user_id == user_id)
                .order_by(cart_items.c.id)
            ).all()
            return [(row.product_id, row.quantity) for row in rows]

    return _cart_of
