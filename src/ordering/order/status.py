"""Order Status State Machine.

Status changes after creation go through ``OrderStatusMachine.update``: one
conditional write of ``status`` and ``updated_at`` that never touches cart
or inventory state.

Which transitions are legal is a ``TransitionPolicy``. ``FlatTransitions``
(the default) lets any status follow any other. ``TransitionGraph`` is a
forward-only graph:

    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED (from PENDING, CONFIRMED, PROCESSING)
"""

from abc import ABC, abstractmethod

from sqlalchemy import select, update

from ordering.order.records import Order, OrderStatus, order_from_row
from shared.config import Settings
from shared.errors import InvalidStatus, OrderNotFound
from shared.logging import get_logger
from shared.storage import Store, orders, utcnow

logger = get_logger(__name__)


def parse_status(value) -> OrderStatus:
    """Coerce ``value`` into an ``OrderStatus`` or raise ``InvalidStatus``."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatus(value, OrderStatus.values()) from None


# ---------------------------------------------------------------------------
# Transition policies
# ---------------------------------------------------------------------------
class TransitionPolicy(ABC):
    @abstractmethod
    def sources_for(self, target: OrderStatus) -> frozenset[OrderStatus]:
        """Statuses from which ``target`` may be entered."""
        ...

    def allows(self, current: OrderStatus, target: OrderStatus) -> bool:
        return current in self.sources_for(target)


class FlatTransitions(TransitionPolicy):
    """Any status may follow any other."""

    def sources_for(self, target):
        return frozenset(OrderStatus)


_FORWARD_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


class TransitionGraph(TransitionPolicy):
    """Only the transitions listed in ``transitions`` are allowed."""

    def __init__(self, transitions=None):
        self.transitions = transitions if transitions is not None else _FORWARD_TRANSITIONS

    def sources_for(self, target):
        return frozenset(source for source, targets in self.transitions.items() if target in targets)


def build_transition_policy(settings: Settings) -> TransitionPolicy:
    if settings.order_transitions == "flat":
        return FlatTransitions()
    if settings.order_transitions == "graph":
        return TransitionGraph()
    raise ValueError(f"Unknown order transition policy: {settings.order_transitions}")


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------
class OrderStatusMachine:
    def __init__(self, store: Store, policy: TransitionPolicy | None = None):
        self.store = store
        self.policy = policy or FlatTransitions()

    def update(self, order_id, new_status) -> Order:
        """Move an order to ``new_status`` and return the updated header."""
        target = parse_status(new_status)
        sources = [status.value for status in self.policy.sources_for(target)]

        with self.store.begin() as conn:
            result = conn.execute(
                update(orders)
                .where(orders.c.id == order_id)
                .where(orders.c.status.in_(sources))
                .values(status=target.value, updated_at=utcnow())
            )
            row = conn.execute(select(orders).where(orders.c.id == order_id)).first()

        if row is None:
            raise OrderNotFound(order_id)
        if result.rowcount == 0:
            valid = sorted(status.value for status in OrderStatus if self.policy.allows(OrderStatus(row.status), status))
            raise InvalidStatus(
                target.value,
                valid,
                reason=f"Cannot transition from {row.status} to {target.value}",
            )

        logger.info("order_status_updated", order_id=order_id, status=target.value)
        return order_from_row(row)
