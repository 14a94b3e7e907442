"""Storefront FastAPI application.

The storage handle is built once, at application construction, and shared by
every request through ``app.state.services``.

Usage:
    uvicorn app:create_app --factory --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.api.routes import cart_router, install_error_handlers, order_router
from ordering.services import build_services
from shared.config import Settings
from shared.logging import add_context, clear_context, configure_logging, get_logger
from shared.storage import Store, create_store, setup_db

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, store: Store | None = None, configure_logs: bool = True) -> FastAPI:
    settings = settings or Settings.from_env()
    if configure_logs:
        configure_logging(settings.environment)

    if store is None:
        store = create_store(settings)
        setup_db(store)

    app = FastAPI(
        title="Storefront API",
        description="Cart, checkout and order management",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.services = build_services(store, settings)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        clear_context()
        add_context(
            method=request.method,
            path=request.url.path,
            caller_id=request.headers.get("x-user-id"),
        )
        return await call_next(request)

    install_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)

    @app.get("/health")
    def health():
        return JSONResponse(
            content={
                "status": "ok",
                "database": store.dialect,
                "pricing_policy": settings.pricing_policy,
            }
        )

    logger.info("app_created", database=store.dialect, pricing_policy=settings.pricing_policy)
    return app
