"""FastAPI application for the alert escalation engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response

from alert_escalation.api.exception_handlers import register_exception_handlers
from alert_escalation.api.routes import escalation
from alert_escalation.core import close_db, get_logger, get_settings, init_db, setup_logging
from alert_escalation.core.metrics import get_metrics_response
from alert_escalation.jobs.escalation_sweep_job import get_escalation_sweep_job

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle - startup and shutdown events."""
    setup_logging()

    settings = get_settings()
    await init_db()
    logger.info("Database initialized")

    sweep_job = None
    if settings.escalation_sweep_enabled:
        sweep_job = get_escalation_sweep_job(settings.escalation_sweep_interval_seconds)
        await sweep_job.start()

    try:
        yield
    finally:
        if sweep_job is not None:
            await sweep_job.stop()
        await close_db()
        logger.info("Shutdown complete")


app = FastAPI(
    title=get_settings().app_name,
    version=get_settings().app_version,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(escalation.router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": f"{get_settings().app_name} is running"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=get_metrics_response(), media_type="text/plain; version=0.0.4")


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
