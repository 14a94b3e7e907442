"""FastAPI routes for the Ordering domain: cart and orders.

Authentication and role checks happen upstream; the gateway forwards the
caller's identity in ``X-User-Id`` and ``X-User-Role``.
"""

from dataclasses import dataclass

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.api.schemas import (
    AddToCartRequest,
    CartLineResponse,
    CartLineSchema,
    CartResponse,
    CartViewItemSchema,
    CheckoutRequestSchema,
    OrderListResponse,
    OrderResponse,
    OrderSchema,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from ordering.order.checkout import CheckoutRequest
from ordering.services import OrderingServices
from shared.errors import OrderingError
from shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_services(request: Request) -> OrderingServices:
    return request.app.state.services


def get_caller(
    x_user_id: int | None = Header(default=None),
    x_user_role: str = Header(default="customer"),
) -> Caller:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Caller(user_id=x_user_id, role=x_user_role.lower())


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return caller


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
def get_cart(
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> CartResponse:
    snapshot = services.cart.view(caller.user_id)
    return CartResponse(cart=[CartViewItemSchema.from_line(line) for line in snapshot.lines])


@cart_router.post("/items", status_code=201, response_model=CartLineResponse)
def add_cart_item(
    body: AddToCartRequest,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> CartLineResponse:
    line = services.cart.add(caller.user_id, body.product_id, body.quantity)
    return CartLineResponse(item=CartLineSchema.from_line(line))


@cart_router.patch("/items/{line_id}", response_model=CartLineResponse)
def update_cart_item(
    line_id: int,
    body: UpdateCartItemRequest,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> CartLineResponse:
    line = services.cart.update(caller.user_id, line_id, body.quantity)
    return CartLineResponse(item=CartLineSchema.from_line(line))


@cart_router.delete("/items/{line_id}", status_code=204)
def remove_cart_item(
    line_id: int,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> Response:
    services.cart.remove(caller.user_id, line_id)
    return Response(status_code=204)


@cart_router.delete("", status_code=204)
def clear_cart(
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> Response:
    services.cart.clear(caller.user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
def list_orders(
    status: str | None = None,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> OrderListResponse:
    orders = services.queries.list_orders(caller.user_id, status=status)
    return OrderListResponse(orders=[OrderSchema.from_order(order, include_items=False) for order in orders])


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> OrderResponse:
    order = services.queries.get_order(order_id, caller.user_id, is_admin=caller.is_admin)
    return OrderResponse(order=OrderSchema.from_order(order))


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(
    body: CheckoutRequestSchema,
    caller: Caller = Depends(get_caller),
    services: OrderingServices = Depends(get_services),
) -> OrderResponse:
    order = services.checkout.create_order(
        caller.user_id,
        CheckoutRequest(
            shipping_address_id=body.shipping_address_id,
            billing_address_id=body.billing_address_id,
            notes=body.notes,
        ),
    )
    return OrderResponse(order=OrderSchema.from_order(order))


@order_router.patch("/{order_id}", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    body: UpdateOrderStatusRequest,
    _admin: Caller = Depends(require_admin),
    services: OrderingServices = Depends(get_services),
) -> OrderResponse:
    order = services.status.update(order_id, body.status)
    return OrderResponse(order=OrderSchema.from_order(order, include_items=False))


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def _error_body(exc) -> dict:
    code = getattr(exc, "code", None)
    if code is None:
        return {"error": "Invalid request", "messages": getattr(exc, "messages", {})}
    return {"error": exc.message, "code": code, **exc.details}


def install_error_handlers(app: FastAPI):
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=_error_body(exc))

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_error(request: Request, exc: ObjectNotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc))

    @app.exception_handler(OrderingError)
    async def ordering_error(request: Request, exc: OrderingError):
        if exc.http_status >= 500:
            logger.error("request_failed", path=request.url.path, code=exc.code, error=str(exc))
        return JSONResponse(status_code=exc.http_status, content=_error_body(exc))
