"""FastAPI application initialization."""

import asyncio
import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from shopsync import __version__
from shopsync.api import catalog, health, scrape
from shopsync.config import get_settings
from shopsync.logging_config import setup_logfire
from shopsync.middleware.correlation_id import CorrelationIDMiddleware
from shopsync.tasks import (
    drain_pending_tasks,
    install_signal_handlers,
    pending_task_count,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager with graceful shutdown support."""
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            send_default_pii=False,
            integrations=[FastApiIntegration()],
        )

    install_signal_handlers(asyncio.get_running_loop())

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        destination_store=settings.shopify_store_domain,
        admin_api_configured=bool(settings.shopify_admin_api_access_token),
    )

    yield

    logfire.info(
        "Application shutdown initiated",
        pending_tasks=pending_task_count(),
    )
    await drain_pending_tasks()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="Shopsync",
    description="Scrape storefront catalogs and re-create them in a destination store",
    version=__version__,
    lifespan=lifespan,
)

# Correlation ID middleware (must be first for request tracing)
app.add_middleware(CorrelationIDMiddleware)

# The browser UI is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Correlation-ID"],
)

app.include_router(health.router, tags=["health"])
app.include_router(scrape.router, prefix="/api/shopify", tags=["scrape"])
app.include_router(catalog.router, prefix="/api/shopify", tags=["catalog"])


@app.get("/")
def root():
    """Root endpoint."""
    settings = get_settings()
    return {
        "message": "Shopsync API",
        "destination": settings.shopify_store_domain,
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "shopsync.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
