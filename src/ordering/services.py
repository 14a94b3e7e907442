"""Composition of the ordering components around one storage handle."""

from dataclasses import dataclass

from identity.addresses import AddressValidator
from inventory.ledger import InventoryLedger
from ordering.cart.lines import CartLines
from ordering.cart.snapshot import CartMaterializer
from ordering.order.checkout import OrderFulfillmentCoordinator
from ordering.order.queries import OrderQueries
from ordering.order.status import OrderStatusMachine, build_transition_policy
from ordering.pricing.engine import PricingEngine
from ordering.pricing.policy import build_pricing_policy
from shared.config import Settings
from shared.storage import Store


@dataclass
class OrderingServices:
    store: Store
    ledger: InventoryLedger
    addresses: AddressValidator
    cart: CartLines
    checkout: OrderFulfillmentCoordinator
    status: OrderStatusMachine
    queries: OrderQueries


def build_services(store: Store, settings: Settings | None = None) -> OrderingServices:
    settings = settings or Settings()

    materializer = CartMaterializer(store)
    ledger = InventoryLedger(store)
    addresses = AddressValidator(store)
    cart = CartLines(store, materializer)
    checkout = OrderFulfillmentCoordinator(
        store,
        materializer=materializer,
        addresses=addresses,
        pricing=PricingEngine(build_pricing_policy(settings)),
        ledger=ledger,
        cart=cart,
    )
    return OrderingServices(
        store=store,
        ledger=ledger,
        addresses=addresses,
        cart=cart,
        checkout=checkout,
        status=OrderStatusMachine(store, build_transition_policy(settings)),
        queries=OrderQueries(store),
    )
