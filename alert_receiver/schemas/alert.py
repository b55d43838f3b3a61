"""Alert schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AlertmanagerAlert(BaseModel):
    """One alert as sent by Alertmanager (webhook or ``/api/v2/alerts``)."""

    status: str | dict[str, Any] | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    startsAt: str | None = None
    endsAt: str | None = None
    generatorURL: str | None = None
    fingerprint: str | None = None

    model_config = ConfigDict(extra="allow")


class AlertmanagerWebhook(BaseModel):
    """Alertmanager webhook notification for one alert group."""

    version: str | None = None
    groupKey: str | None = None
    status: str | None = None
    receiver: str | None = None
    externalURL: str | None = None
    groupLabels: dict[str, str] = Field(default_factory=dict)
    commonLabels: dict[str, str] = Field(default_factory=dict)
    commonAnnotations: dict[str, str] = Field(default_factory=dict)
    alerts: list[AlertmanagerAlert] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class GroupedAlertsPayload(BaseModel):
    """Full alert list pushed by the Alertmanager resync sidecar."""

    status: str | None = None
    externalURL: str | None = None
    graphURL: str | None = None
    logsURL: str | None = None
    grafanaURL: str | None = None
    data: list[AlertmanagerAlert] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class AlertRead(BaseModel):
    identifier: str
    status: str
    datacenter: str | None
    description: str | None
    starts_at: datetime
    ends_at: datetime | None
    external_url: str
    generator_url: str | None
    link_url: str | None
    link_text: str | None

    model_config = ConfigDict(from_attributes=True)
