"""Schema package exports."""
from .alert import AlertmanagerAlert, AlertmanagerWebhook, AlertRead, GroupedAlertsPayload
from .receiver import ReceiverCreate, ReceiverUrlRead
from .topic import FiringTopicsRead, TopicRead

__all__ = [
    "AlertmanagerAlert",
    "AlertmanagerWebhook",
    "AlertRead",
    "GroupedAlertsPayload",
    "ReceiverCreate",
    "ReceiverUrlRead",
    "FiringTopicsRead",
    "TopicRead",
]
