from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from alert_receiver import db
from alert_receiver.config import AppInfo, get_settings
from alert_receiver.core.logging import get_logger, setup_logging
import alert_receiver.models  # registers the tables
from alert_receiver.routers import get_api_router
from alert_receiver.services import jobs
from alert_receiver.utils.errors import error_response

logger = get_logger(__name__)
ALLOWED_CREATE_ENV = {"dev", "local", "test"}


def _current_settings():
    """Return the cached settings."""

    return get_settings()


def _configure_middlewares(fastapi_app: FastAPI) -> None:
    """Configure middleware using a fresh snapshot of the settings."""

    runtime_settings = _current_settings()

    if runtime_settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware, app_name=AppInfo().name)
        fastapi_app.add_route("/metrics", handle_metrics)

    if runtime_settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=runtime_settings.SENTRY_DSN, traces_sample_rate=0.2)


def _warn_missing_admin_key(settings: Any) -> None:
    if not settings.admin_api_key:
        logger.warning(
            "ADMIN_API_KEY is not configured; receiver URLs can't be generated.",
            extra={"env": settings.app_env},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = _current_settings()
    setup_logging(settings.log_level)
    logger.info("Application startup", extra={"env": settings.app_env})
    _warn_missing_admin_key(settings)

    db.init_engine()
    env_lower = settings.app_env.lower()
    if settings.ALLOW_DB_CREATE_ALL and env_lower in ALLOWED_CREATE_ENV:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        db.create_all()

    if settings.SCHEDULER_ENABLED and not settings.JOBS_RUN_IMMEDIATELY:
        jobs.start_scheduler()
    else:
        logger.info(
            "Background scheduler disabled; webhooks are processed inline. SCHEDULER_ENABLED=%s",
            settings.SCHEDULER_ENABLED,
        )
    try:
        yield
    finally:
        jobs.shutdown_scheduler()
        db.close_engine()
        logger.info("Application shutdown", extra={"env": settings.app_env})


app_info = AppInfo()

app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)

_configure_middlewares(app)
app.include_router(get_api_router())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response("HTTP_ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


__all__ = ["app"]
