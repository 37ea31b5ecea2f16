"""Stockguard FastAPI application.

Serves the ordering and inventory domains plus the inbound event webhook
from one process. Requests are wrapped in the domain context matching
their URL prefix.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
# PROTEAN_ENV selects the config overlay from each domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers
from shared.concurrency import TransientFailure
from shared.logging import configure_logging

from checkout.container import build_services
from inventory.domain import inventory
from ordering.domain import ordering

configure_logging(service="api")

ordering.init()
inventory.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/orders": ordering,
    "/events": ordering,
    "/inventory": inventory,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Stockguard API",
    description="Order lifecycle and inventory reservation",
)
app.state.services = build_services(ordering, inventory)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ValidationError → 400, ObjectNotFoundError → 404
register_exception_handlers(app)


@app.exception_handler(TransientFailure)
async def transient_failure_handler(request: Request, exc: TransientFailure):  # noqa: ARG001
    return JSONResponse(status_code=503, content={"error": str(exc)}, headers={"Retry-After": "1"})


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the correct Protean domain context for each request."""
    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    # No domain match: health check and docs pass through
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import router as events_router  # noqa: E402
from inventory.api import inventory_router  # noqa: E402
from ordering.api import order_router  # noqa: E402

app.include_router(order_router)
app.include_router(inventory_router)
app.include_router(events_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
                "inventory": {"name": inventory.name},
            },
            "sweeper": {"interval_seconds": app.state.services.sweeper.interval_seconds},
        }
    )
