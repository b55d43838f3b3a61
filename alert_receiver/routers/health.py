"""Health check endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy import text

from alert_receiver.config import AppInfo, get_settings
from alert_receiver.core.runtime_state import is_scheduler_active, last_webhooks
from alert_receiver.db import get_engine

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


def _db_status() -> str:
    """Return 'ok' if the DB is reachable, 'error' otherwise."""

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:  # noqa: BLE001
        logger.exception("DB health check failed")
        return "error"


@router.get("", summary="Health check")
def healthcheck() -> dict[str, object]:
    """Return service, database and background job status."""

    settings = get_settings()
    db_status = _db_status()
    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "service": AppInfo().name,
        "version": AppInfo().version,
        "db_ok": db_status == "ok",
        "db_status": db_status,
        "scheduler_config_enabled": bool(settings.SCHEDULER_ENABLED),
        "scheduler_running": is_scheduler_active(),
        "jobs_run_immediately": bool(settings.JOBS_RUN_IMMEDIATELY),
        "assign_enabled": bool(settings.PROMETHEUS_ALERT_RECEIVER_ENABLE_ASSIGN),
        "opsgenie_configured": bool(settings.PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY),
        "admin_api_key_configured": bool(settings.admin_api_key),
        "last_webhooks": last_webhooks(),
    }
