"""Error taxonomy for the ordering core.

Rejections of caller input are Protean ``ValidationError``s and missing
records are ``ObjectNotFoundError``s, so they carry the same ``messages``
mapping every other domain error carries. Each error also exposes a stable
``code``, a human ``message`` and structured ``details`` for the API layer.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError

VALIDATION_STATUS = 400
NOT_FOUND_STATUS = 404


class _Described:
    code = "error"
    http_status = 500

    def _describe(self, message, **details):
        self.message = message
        self.details = details

    def __str__(self):
        return self.message


# ---------------------------------------------------------------------------
# Rejections (400)
# ---------------------------------------------------------------------------
class EmptyCart(_Described, ValidationError):
    code = "empty_cart"
    http_status = VALIDATION_STATUS

    def __init__(self, user_id):
        self.user_id = user_id
        self._describe("Cart is empty")
        super().__init__({"cart": [self.message]})


class InsufficientStock(_Described, ValidationError):
    code = "insufficient_stock"
    http_status = VALIDATION_STATUS

    def __init__(self, product_id, available, requested=None, product_name=None):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        label = product_name or f"product {product_id}"
        self._describe(
            f"Not enough stock for {label}. Available: {available}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        super().__init__({"quantity": [self.message]})


class InvalidAddress(_Described, ValidationError):
    code = "invalid_address"
    http_status = VALIDATION_STATUS

    def __init__(self, field, address_id):
        self.field = field
        self.address_id = address_id
        self._describe(f"Invalid {field}", field=field, address_id=address_id)
        super().__init__({field: [self.message]})


class InvalidStatus(_Described, ValidationError):
    code = "invalid_status"
    http_status = VALIDATION_STATUS

    def __init__(self, status, valid, reason="Invalid status"):
        self.status = status
        self.valid = list(valid)
        self._describe(reason, status=status, valid=self.valid)
        super().__init__({"status": [self.message]})


class InvalidQuantity(_Described, ValidationError):
    code = "invalid_quantity"
    http_status = VALIDATION_STATUS

    def __init__(self, quantity):
        self.quantity = quantity
        self._describe("quantity must be a positive integer", quantity=quantity)
        super().__init__({"quantity": [self.message]})


# ---------------------------------------------------------------------------
# Missing records (404)
# ---------------------------------------------------------------------------
class OrderNotFound(_Described, ObjectNotFoundError):
    code = "order_not_found"
    http_status = NOT_FOUND_STATUS

    def __init__(self, order_id):
        self.order_id = order_id
        self._describe("Order not found", order_id=order_id)
        super().__init__({"order_id": [self.message]})


class ProductNotFound(_Described, ObjectNotFoundError):
    code = "product_not_found"
    http_status = NOT_FOUND_STATUS

    def __init__(self, product_id):
        self.product_id = product_id
        self._describe("Product not found", product_id=product_id)
        super().__init__({"product_id": [self.message]})


class CartLineNotFound(_Described, ObjectNotFoundError):
    code = "cart_item_not_found"
    http_status = NOT_FOUND_STATUS

    def __init__(self, line_id):
        self.line_id = line_id
        self._describe("Cart item not found", line_id=line_id)
        super().__init__({"line_id": [self.message]})


# ---------------------------------------------------------------------------
# Everything else
# ---------------------------------------------------------------------------
class OrderingError(_Described, Exception):
    """Base for failures that are neither rejections nor missing records."""

    def __init__(self, message, **details):
        self._describe(message, **details)
        super().__init__(message)


class OrderAccessDenied(OrderingError):
    code = "access_denied"
    http_status = 403

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__("Access denied", order_id=order_id)


class CartChanged(OrderingError):
    """The cart moved on between the snapshot read and the checkout write."""

    code = "cart_changed"
    http_status = 409
    retryable = True

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__("Cart changed during checkout, please review it and try again", user_id=user_id)


class FulfillmentUnavailable(OrderingError):
    """Storage or transaction fault. Safe to retry from a fresh cart read."""

    code = "fulfillment_unavailable"
    http_status = 500
    retryable = True

    def __init__(self, message="Checkout failed", cause=None):
        self.cause = cause
        super().__init__(message)
