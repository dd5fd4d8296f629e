"""FastAPI application initialization."""

import asyncio
import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import chat, dashboard, health
from src.config import get_settings
from src.constants import GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS
from src.db.client import get_supabase_client
from src.logging_config import setup_logfire
from src.middleware.correlation_id import CorrelationIDMiddleware
from src.services.background_tasks import pending_tasks

APP_VERSION = "1.0.0"

# =============================================================================
# Graceful Shutdown Infrastructure
# =============================================================================


async def drain_background_tasks(timeout: float = GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS) -> None:
    """Wait for fire-and-forget tasks, cancelling whatever outlives ``timeout``."""
    tasks = pending_tasks()
    if not tasks:
        logfire.info("No pending background tasks during shutdown")
        return

    logfire.info(
        "Waiting for pending background tasks to complete",
        task_count=len(tasks),
        timeout_seconds=timeout,
    )
    done, pending = await asyncio.wait(
        tasks, timeout=timeout, return_when=asyncio.ALL_COMPLETED
    )

    if pending:
        logfire.warning(
            "Cancelling remaining tasks after timeout",
            completed_count=len(done),
            cancelled_count=len(pending),
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    else:
        logfire.info(
            "All background tasks completed successfully",
            completed_count=len(done),
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
            environment=settings.env,
            send_default_pii=False,
            integrations=[FastApiIntegration()],
        )

    app.state.supabase = await get_supabase_client()

    logfire.info(
        "Application startup complete",
        model=settings.default_model,
        fallback_model=settings.fallback_model,
        environment=settings.env,
    )

    yield

    logfire.info("Application shutdown initiated", pending_tasks=len(pending_tasks()))
    await drain_background_tasks()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="Sales Coaching AI",
    description="Chat-driven sales call analytics and coaching using PydanticAI Gateway",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Correlation ID middleware (must be first for request tracing)
app.add_middleware(CorrelationIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
app.include_router(dashboard.router, prefix="/api/v1", tags=["dashboard"])


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Sales Coaching AI API", "version": APP_VERSION}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
