"""Alert topic endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from alert_receiver.db import get_db
from alert_receiver.models.alert import Alert
from alert_receiver.models.topic import Topic
from alert_receiver.schemas.alert import AlertRead
from alert_receiver.schemas.topic import FiringTopicsRead, TopicRead
from alert_receiver.services import alerts as alerts_service
from alert_receiver.utils.errors import not_found

router = APIRouter(prefix="/prometheus/topics", tags=["topics"])


@router.get("/firing", response_model=FiringTopicsRead, status_code=status.HTTP_200_OK)
def list_firing_topics(
    category_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> FiringTopicsRead:
    topics = alerts_service.firing_topics(db, [category_id] if category_id is not None else None)
    return FiringTopicsRead(count=len(topics), topics=[TopicRead.model_validate(t) for t in topics])


@router.get("/{topic_id}/alerts", response_model=list[AlertRead], status_code=status.HTTP_200_OK)
def list_topic_alerts(topic_id: int, db: Session = Depends(get_db)) -> list[Alert]:
    if db.get(Topic, topic_id) is None:
        raise not_found()
    return alerts_service.topic_alerts(db, topic_id)
