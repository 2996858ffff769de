"""
Uruti Notifications.

Notification orchestration for salon events: template rendering, delivery
policy and Email, Push and In-App channel adapters.
"""
from .domain import (
    DeliveryOptions,
    NotificationChannel,
    NotificationOrchestrator,
    NotificationOutcome,
    NotificationPriority,
    NotificationType,
)
from .main import create_notification_orchestrator

__version__ = "1.0.0"

__all__ = [
    "DeliveryOptions",
    "NotificationChannel",
    "NotificationOrchestrator",
    "NotificationOutcome",
    "NotificationPriority",
    "NotificationType",
    "create_notification_orchestrator",
    "__version__",
]
