"""
Uruti Notifications - Domain Layer.

Exports entities, templates, channels, policy and the orchestrator.
"""
from .channels import (
    ChannelError,
    ChannelRegistry,
    ChannelSender,
    ChannelStatus,
    DeliveryError,
    DeliveryResult,
    EmailChannel,
    EmailConfig,
    EmailDeliveryMode,
    EmailTransport,
    InAppChannel,
    PermanentDeliveryError,
    PushChannel,
    PushConfig,
    SmtpEmailTransport,
)
from .entities import (
    DeliveryMeta,
    DeliveryOptions,
    InAppPage,
    InAppRecord,
    InAppRecordCreate,
    InAppRecordFilter,
    NotificationChannel,
    NotificationContext,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    Pagination,
    Recipient,
    RenderedContent,
    UserProfile,
    template_name_for,
)
from .messages import MESSAGE_CATALOG, MessageTemplate, format_money, message_for
from .policy import DEFAULT_RULES, ActionLink, DeliveryPolicy, DeliveryRule
from .ports import InAppNotificationStore, PreferenceStore, PushTokenRegistry, UserDirectory
from .retry import BackoffPolicy, DeliveryAttempt, DeliveryState, RetryExecution
from .service import NotificationOrchestrator, NotificationOutcome, NotificationStatus
from .templates import TemplateCatalog, TemplateDocument, TemplateEngine, html_to_text

__all__ = [
    # Entities
    "NotificationType",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationContext",
    "DeliveryOptions",
    "DeliveryMeta",
    "Recipient",
    "RenderedContent",
    "UserProfile",
    "InAppRecord",
    "InAppRecordCreate",
    "InAppRecordFilter",
    "InAppPage",
    "Pagination",
    "NotificationPreference",
    "template_name_for",
    # Templates
    "TemplateCatalog",
    "TemplateDocument",
    "TemplateEngine",
    "html_to_text",
    "MessageTemplate",
    "MESSAGE_CATALOG",
    "message_for",
    "format_money",
    # Channels
    "ChannelSender",
    "ChannelRegistry",
    "ChannelStatus",
    "ChannelError",
    "DeliveryError",
    "PermanentDeliveryError",
    "DeliveryResult",
    "EmailChannel",
    "EmailConfig",
    "EmailDeliveryMode",
    "EmailTransport",
    "SmtpEmailTransport",
    "PushChannel",
    "PushConfig",
    "InAppChannel",
    # Retry
    "BackoffPolicy",
    "DeliveryAttempt",
    "DeliveryState",
    "RetryExecution",
    # Policy
    "ActionLink",
    "DeliveryRule",
    "DeliveryPolicy",
    "DEFAULT_RULES",
    # Ports
    "UserDirectory",
    "PushTokenRegistry",
    "InAppNotificationStore",
    "PreferenceStore",
    # Service
    "NotificationOrchestrator",
    "NotificationOutcome",
    "NotificationStatus",
]
