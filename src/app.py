"""Storefront FastAPI application.

Processes commands synchronously via HTTP. Each domain request is wrapped in
the storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.domain import storefront  # noqa: E402

storefront.init()

_DOMAIN_PREFIXES = (
    "/products",
    "/warehouses",
    "/inventory",
    "/orders",
    "/bulk-orders",
    "/pos",
    "/loyalty",
    "/refunds",
    "/config",
)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Order fulfillment, stock reservation, loyalty and refunds",
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
    """Push the storefront domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with storefront.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.configuration.api import config_router  # noqa: E402
from storefront.inventory.api import inventory_maintenance_router, product_router, warehouse_router  # noqa: E402
from storefront.loyalty.api import loyalty_router  # noqa: E402
from storefront.ordering.api import bulk_router, order_router, pos_router  # noqa: E402
from storefront.refunds.api import refund_router  # noqa: E402
from storefront.shared.http import register_error_handlers  # noqa: E402

app.include_router(product_router)
app.include_router(warehouse_router)
app.include_router(inventory_maintenance_router)
app.include_router(order_router)
app.include_router(bulk_router)
app.include_router(pos_router)
app.include_router(loyalty_router)
app.include_router(refund_router)
app.include_router(config_router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": storefront.name}})
