"""Routes receiving Alertmanager webhooks."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from alert_receiver.config import get_settings
from alert_receiver.core.runtime_state import record_webhook
from alert_receiver.db import get_db
from alert_receiver.models.receiver import Receiver
from alert_receiver.schemas.alert import AlertmanagerWebhook, GroupedAlertsPayload
from alert_receiver.schemas.receiver import ReceiverCreate, ReceiverUrlRead
from alert_receiver.security import require_admin
from alert_receiver.services import jobs
from alert_receiver.services import receivers as receivers_service
from alert_receiver.services.processing import process_alert, process_grouped_alerts
from alert_receiver.utils.errors import not_found
from alert_receiver.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prometheus", tags=["receiver"])

SUCCESS = {"success": "OK"}


def receiver_from_token(token: str, db: Session = Depends(get_db)) -> Receiver:
    """Resolve the receiver in the URL; malformed tokens don't match any route."""

    if not receivers_service.is_valid_token(token):
        raise not_found()
    return receivers_service.find_receiver(db, token)


def _log_debug(message: str, data: dict) -> None:
    if get_settings().PROMETHEUS_ALERT_RECEIVER_DEBUG_ENABLED:
        logger.warning("Prometheus Alerts Debugging: %s", message, extra={"data": data})


@router.post("/receiver/generate", response_model=ReceiverUrlRead, status_code=status.HTTP_200_OK)
def generate_receiver_url(
    payload: ReceiverCreate,
    actor: str = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ReceiverUrlRead:
    _, url = receivers_service.generate_receiver(
        db,
        category_id=payload.category_id,
        assignee_group_id=payload.assignee_group_id,
        created_by=actor,
    )
    return ReceiverUrlRead(url=url)


@router.post("/receiver/resync/{token}", status_code=status.HTTP_200_OK)
@router.post("/receiver/grouped/alerts/{token}", status_code=status.HTTP_200_OK)
async def receive_grouped_alerts(
    payload: GroupedAlertsPayload | None = None,
    receiver: Receiver = Depends(receiver_from_token),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    payload = payload or GroupedAlertsPayload()
    _log_debug("grouped alerts", payload.model_dump(exclude={"data"}))
    record_webhook("grouped_alerts", utcnow())

    jobs.enqueue(
        process_grouped_alerts,
        db=db,
        token=receiver.token,
        data=[alert.model_dump() for alert in payload.data],
        external_url=payload.externalURL,
    )
    return SUCCESS


@router.post("/receiver/{token}", status_code=status.HTTP_200_OK)
async def receive(
    payload: AlertmanagerWebhook | None = None,
    receiver: Receiver = Depends(receiver_from_token),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    payload = payload or AlertmanagerWebhook()
    _log_debug(
        "alert",
        payload.model_dump(exclude={"alerts", "groupLabels", "commonLabels", "commonAnnotations"}),
    )
    record_webhook("alert", utcnow())

    jobs.enqueue(process_alert, db=db, token=receiver.token, payload=payload.model_dump())
    return SUCCESS


__all__ = ["router"]
