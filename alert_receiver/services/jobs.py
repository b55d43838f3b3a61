"""Background job queue on top of APScheduler."""
from __future__ import annotations

import logging
from typing import Any, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import Session

from alert_receiver import db as db_module
from alert_receiver.config import get_settings
from alert_receiver.core.runtime_state import is_scheduler_active, set_scheduler_active

logger = logging.getLogger(__name__)

JobFunc = Callable[..., Any]

scheduler: AsyncIOScheduler | None = None


def start_scheduler() -> AsyncIOScheduler:
    """Start the process-wide scheduler; must be called from the running event loop."""

    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
        scheduler.start()
        set_scheduler_active(True)
        logger.info("Job scheduler started")
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
    set_scheduler_active(False)


def _run_in_session(func: JobFunc, kwargs: dict[str, Any]) -> None:
    try:
        with db_module.session_scope() as session:
            func(session, **kwargs)
    except Exception:
        logger.exception("Background job failed", extra={"job": func.__name__})
        raise


def enqueue(func: JobFunc, *, db: Session, **kwargs: Any) -> str | None:
    """Run ``func(session, **kwargs)`` in the background.

    Runs inline on ``db`` when ``JOBS_RUN_IMMEDIATELY`` is set or no scheduler
    is running; otherwise the job gets its own session. Returns the job id of
    scheduled jobs.
    """

    if get_settings().JOBS_RUN_IMMEDIATELY or scheduler is None or not is_scheduler_active():
        func(db, **kwargs)
        return None

    job = scheduler.add_job(_run_in_session, "date", args=[func, kwargs], misfire_grace_time=None)
    logger.debug("Job enqueued", extra={"job": func.__name__, "job_id": job.id})
    return job.id


__all__ = ["scheduler", "start_scheduler", "shutdown_scheduler", "enqueue"]
