"""
Card Setup Relay - Main Application Entry Point

This module initializes the FastAPI application that relays the Stripe
SetupIntent flow: it issues client secrets to the card capture form,
authenticates Stripe webhooks and records payment methods saved for
off-session use.
"""

import structlog
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from api import routes
from api.middleware import log_api_entry
from core.dependencies import (
    clear_settings,
    get_settings,
    init_services,
    init_settings,
)
from core.logging import configure_logging
from core.metrics import init_metrics
from core.settings import Settings
from core.tracing import init_tracer

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()

    init_tracer(settings.OTEL_SERVICE_NAME)
    init_services(app, settings)

    log.info(
        "app.started",
        app_name=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        ledger_backend=settings.LEDGER_BACKEND,
        webhook_url=f"http://localhost:{settings.PORT}{API_PREFIX}/webhook",
    )

    yield
    # Shutdown
    clear_settings()


app = FastAPI(
    title="Card Setup Relay",
    description="""
    ## Save cards for off-session charges

    Backend relay for the Stripe SetupIntent flow. Raw card data never
    reaches this service; the browser confirms directly with Stripe.

    ### Flow:
    1. `POST /api/stripe/setup-intent` issues a client secret
    2. The card capture form confirms the SetupIntent with Stripe
    3. Stripe calls `POST /api/stripe/webhook`; verified
       `setup_intent.succeeded` events are recorded
    4. `POST /api/stripe/payment-methods` lists recorded payment methods
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

FastAPIInstrumentor.instrument_app(app)

startup_settings = Settings()

init_metrics(app, enabled=startup_settings.METRICS_ENABLED)

app.middleware("http")(log_api_entry)

# The browser form is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=[startup_settings.FRONTEND_URL],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error("api.unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint alias."""
    return await health_check(settings)


@app.get("/healthz")
async def health_check(settings: Settings = Depends(get_settings)):
    """Report service status and which Stripe credentials are configured."""
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "ledger_backend": settings.LEDGER_BACKEND,
        "stripe_configured": settings.stripe_configured,
        "webhook_configured": settings.webhook_configured,
    }


API_PREFIX = "/api/stripe"

app.include_router(routes.router, prefix=API_PREFIX, tags=["stripe"])


def main():
    import uvicorn

    configure_logging()
    settings = Settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
