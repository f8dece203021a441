"""Storefront FastAPI application.

Web server that processes checkout, cart and order commands synchronously
over HTTP. Every request runs inside the storefront domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml.
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context, configure_logging

configure_logging()
storefront.init()

logger = structlog.get_logger(__name__)

_DOMAIN_PREFIXES = ("/carts", "/coupons", "/checkout", "/orders", "/leaderboard")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Checkout and fulfillment for the storefront",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context and bind a request id for logging."""
    clear_context()
    add_context(request_id=request.headers.get("X-Request-ID") or uuid4().hex, path=request.url.path)

    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with storefront.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api.errors import register_exception_handlers  # noqa: E402
from storefront.api.routes import (  # noqa: E402
    cart_router,
    checkout_router,
    coupon_router,
    leaderboard_router,
    order_router,
)

app.include_router(cart_router)
app.include_router(coupon_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(leaderboard_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
