import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.openapi.utils import get_openapi
from fastapi.responses import Response

from reviewplates.config import ensure_secure_runtime_settings, is_production_mode, settings
from reviewplates.db.migration_check import assert_db_is_up_to_date, maybe_create_schema
from reviewplates.db.session import engine
from reviewplates.observability import configure_logging, log_event, metrics_store, set_request_id
from reviewplates.routers.health import router as health_router
from reviewplates.routers.metrics import router as metrics_router
from reviewplates.routers.orders import router as orders_router
from reviewplates.routers.plates import router as plates_router
from reviewplates.routers.webhook_events import router as webhook_events_router
from reviewplates.routers.webhooks import router as webhooks_router


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import reviewplates.models  # noqa: F401 (register all SQLAlchemy models)

    configure_logging()
    ensure_secure_runtime_settings()
    if is_production_mode() or settings.require_migrations:
        assert_db_is_up_to_date(engine)
    else:
        maybe_create_schema(engine)
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Shopify orders/paid ingestion and NFC review plate redirects",
    lifespan=lifespan,
)


def custom_openapi():
    """
    Adds HTTP Bearer (JWT) auth to the OpenAPI schema so Swagger UI can call
    the OPS/ADMIN ledger, order and metrics endpoints.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    security_schemes = components.setdefault("securitySchemes", {})
    security_schemes["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(
        "http_request",
        webhook_id=request.headers.get("X-Shopify-Webhook-Id"),
        error=None if response.status_code < 500 else str(response.status_code),
    )
    return response


app.include_router(health_router)
app.include_router(webhooks_router)
app.include_router(plates_router)
app.include_router(orders_router)
app.include_router(webhook_events_router)
app.include_router(metrics_router)
