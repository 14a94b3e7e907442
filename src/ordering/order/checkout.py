"""Order Fulfillment Coordinator: converts a cart into an order atomically.

Checkout Flow:
    STARTED → CART_LOADED → VALIDATED → PRICED → PERSISTED → COMMITTED
    ABORTED from any non-terminal state

    1. Load the cart snapshot; empty → EmptyCart (no transaction)
    2. Advisory stock check against the snapshot → InsufficientStock
    3. Validate shipping/billing address ownership → InvalidAddress
    4. Open the transaction
    5. Price the snapshot
    6. Insert the order header (status pending)
    7. Insert one line item per cart line at the snapshot price
    8. Delete the snapshot's cart lines → CartChanged if the cart moved on
    9. Conditionally decrement stock per line → InsufficientStock
   10. Commit

Steps 5-9 share one transaction: any failure rolls all of them back, so an
order never exists without its cleared cart and decremented stock. The
coordinator never retries; a retry is a new checkout from step 1.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import insert, select

from identity.addresses import AddressValidator
from inventory.ledger import InventoryLedger
from ordering.cart.lines import CartLines
from ordering.cart.snapshot import CartMaterializer
from ordering.order.records import Order, OrderLineItem, OrderStatus, order_from_row
from ordering.pricing.engine import PricingEngine
from shared.errors import EmptyCart, InsufficientStock
from shared.logging import get_logger
from shared.storage import Store, order_items, orders

logger = get_logger(__name__)


class CheckoutState(Enum):
    STARTED = "Started"
    CART_LOADED = "CartLoaded"
    VALIDATED = "Validated"
    PRICED = "Priced"
    PERSISTED = "Persisted"
    COMMITTED = "Committed"
    ABORTED = "Aborted"


_TERMINAL_STATES = {CheckoutState.COMMITTED, CheckoutState.ABORTED}


@dataclass(frozen=True)
class CheckoutRequest:
    shipping_address_id: int | None = None
    billing_address_id: int | None = None
    notes: str | None = None

    def __post_init__(self):
        # 0 and other falsy ids mean "no address"
        object.__setattr__(self, "shipping_address_id", self.shipping_address_id or None)
        object.__setattr__(self, "billing_address_id", self.billing_address_id or None)

    @property
    def cleaned_notes(self) -> str | None:
        if self.notes is None:
            return None
        return self.notes.strip() or None


class CheckoutAttempt:
    """Tracks the state of a single checkout attempt."""

    def __init__(self, user_id):
        self.user_id = user_id
        self.state = CheckoutState.STARTED
        self.log = logger.bind(user_id=user_id)
        self.log.debug("checkout_state", state=self.state.value)

    def advance(self, state: CheckoutState):
        if self.state in _TERMINAL_STATES:
            raise RuntimeError(f"Checkout already {self.state.value}")
        self.state = state
        self.log.debug("checkout_state", state=state.value)

    def abort(self, error: Exception):
        previous = self.state
        self.state = CheckoutState.ABORTED
        self.log.info(
            "checkout_aborted",
            failed_in=previous.value,
            error=type(error).__name__,
            reason=str(error),
        )


class OrderFulfillmentCoordinator:
    def __init__(
        self,
        store: Store,
        materializer: CartMaterializer | None = None,
        addresses: AddressValidator | None = None,
        pricing: PricingEngine | None = None,
        ledger: InventoryLedger | None = None,
        cart: CartLines | None = None,
    ):
        self.store = store
        self.materializer = materializer or CartMaterializer(store)
        self.addresses = addresses or AddressValidator(store)
        self.pricing = pricing or PricingEngine()
        self.ledger = ledger or InventoryLedger(store)
        self.cart = cart or CartLines(store, self.materializer)

    def create_order(self, user_id, request: CheckoutRequest | None = None) -> Order:
        """Check out the user's cart and return the new order with its items.

        Raises ``EmptyCart``, ``InsufficientStock``, ``InvalidAddress``,
        ``CartChanged`` or ``FulfillmentUnavailable``. After any of them, nothing is written.
        """
        request = request or CheckoutRequest()
        attempt = CheckoutAttempt(user_id)
        try:
            return self._run(attempt, request)
        except Exception as exc:
            attempt.abort(exc)
            raise

    def _run(self, attempt, request):
        user_id = attempt.user_id

        snapshot = self.materializer.load(user_id)
        if snapshot.is_empty:
            raise EmptyCart(user_id)
        attempt.advance(CheckoutState.CART_LOADED)

        shortfall = snapshot.first_shortfall()
        if shortfall is not None:
            raise InsufficientStock(
                shortfall.product_id,
                shortfall.stock_quantity,
                requested=shortfall.quantity,
                product_name=shortfall.product_name,
            )
        self.addresses.validate_checkout(
            user_id,
            shipping_address_id=request.shipping_address_id,
            billing_address_id=request.billing_address_id,
        )
        attempt.advance(CheckoutState.VALIDATED)

        with self.store.transaction() as conn:
            quote = self.pricing.price(snapshot)
            attempt.advance(CheckoutState.PRICED)

            result = conn.execute(
                insert(orders).values(
                    user_id=user_id,
                    shipping_address_id=request.shipping_address_id,
                    billing_address_id=request.billing_address_id,
                    status=OrderStatus.PENDING.value,
                    subtotal=quote.subtotal,
                    tax=quote.tax,
                    shipping_cost=quote.shipping_cost,
                    total=quote.total,
                    notes=request.cleaned_notes,
                )
            )
            order_id = result.inserted_primary_key[0]

            items = []
            for line in quote.lines:
                item_result = conn.execute(
                    insert(order_items).values(
                        order_id=order_id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                    )
                )
                items.append(
                    OrderLineItem(
                        id=item_result.inserted_primary_key[0],
                        order_id=order_id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                        product_name=line.product_name,
                    )
                )

            self.cart.consume(conn, snapshot)

            for line in snapshot.lines:
                try:
                    self.ledger.decrement(conn, line.product_id, line.quantity)
                except InsufficientStock as exc:
                    raise InsufficientStock(
                        line.product_id,
                        exc.available,
                        requested=line.quantity,
                        product_name=line.product_name,
                    ) from exc
            attempt.advance(CheckoutState.PERSISTED)

            header = conn.execute(select(orders).where(orders.c.id == order_id)).one()

        attempt.advance(CheckoutState.COMMITTED)
        attempt.log.info(
            "order_created",
            order_id=order_id,
            total=str(quote.total),
            item_count=snapshot.item_count,
        )
        return order_from_row(header).with_items(items)
