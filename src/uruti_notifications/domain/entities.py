"""
Uruti Notifications - Domain Entities.

Notification types, channels, priorities and the value objects that flow
between the orchestrator, the delivery policy and the channel adapters.

Architecture Layer: Domain
Principles: Closed Enumerations, Immutable Value Objects, Open Context Maps
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

_TAG_SEPARATORS = re.compile(r"[\s\-.]+")
_QUIET_HOURS_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Caller-supplied template data: scalars, lists (e.g. sale items) and nested maps.
ContextValue = Union[str, int, float, bool, None, list[Any], dict[str, Any]]
NotificationContext = Mapping[str, ContextValue]


def template_name_for(tag: str | Enum) -> str:
    """Normalise a notification tag into its template name.

    ``APPOINTMENT_BOOKED``, ``appointment-booked`` and ``appointment_booked``
    all map to ``appointment_booked``.
    """
    raw = tag.value if isinstance(tag, Enum) else str(tag)
    return _TAG_SEPARATORS.sub("_", raw.strip()).lower()


class NotificationType(str, Enum):
    """Domain events that can trigger a notification."""
    # Appointment lifecycle
    APPOINTMENT_BOOKED = "appointment_booked"
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    APPOINTMENT_NO_SHOW = "appointment_no_show"
    # Sales and payments
    SALE_COMPLETED = "sale_completed"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_FAILED = "payment_failed"
    # Commissions
    COMMISSION_EARNED = "commission_earned"
    COMMISSION_PAID = "commission_paid"
    COMMISSION_UPDATED = "commission_updated"
    # Loyalty
    POINTS_EARNED = "points_earned"
    POINTS_REDEEMED = "points_redeemed"
    REWARD_AVAILABLE = "reward_available"
    VIP_STATUS_ACHIEVED = "vip_status_achieved"
    # Inventory
    LOW_STOCK_ALERT = "low_stock_alert"
    OUT_OF_STOCK = "out_of_stock"
    STOCK_REPLENISHED = "stock_replenished"
    # Salon, staff and account
    SALON_UPDATE = "salon_update"
    MEMBERSHIP_STATUS = "membership_status"
    EMPLOYEE_ASSIGNED = "employee_assigned"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    PASSWORD_RESET = "password_reset"
    EMAIL_CHANGE_VERIFICATION = "email_change_verification"
    # System
    SYSTEM_ALERT = "system_alert"
    SECURITY_ALERT = "security_alert"

    @classmethod
    def from_tag(cls, tag: str | NotificationType | None) -> NotificationType | None:
        """Resolve a raw tag to a known type, or None when it is unknown."""
        if tag is None:
            return None
        if isinstance(tag, cls):
            return tag
        try:
            return cls(template_name_for(tag))
        except ValueError:
            return None


class NotificationChannel(str, Enum):
    """Delivery media."""
    EMAIL = "email"
    PUSH = "push"
    IN_APP = "in_app"


class NotificationPriority(str, Enum):
    """Notification priority levels."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class DeliveryOptions(BaseModel):
    """Per-call overrides. ``channels=None`` defers to the delivery policy."""
    channels: list[NotificationChannel] | None = Field(default=None)
    priority: NotificationPriority | None = Field(default=None)

    model_config = {"frozen": True}

    @field_validator("channels", mode="before")
    @classmethod
    def normalize_channels(cls, v: Any) -> Any:
        """Accept ``IN_APP``, ``in-app`` and ``in_app`` alike."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return [template_name_for(c) if isinstance(c, str) else c for c in v]
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> Any:
        if isinstance(v, str):
            return template_name_for(v)
        return v


class UserProfile(BaseModel):
    """User directory entry as seen by the notification subsystem."""
    id: str
    email: str | None = None
    full_name: str | None = None
    preferred_channels: list[NotificationChannel] | None = None


class Recipient(BaseModel):
    """Resolved delivery target for a single notify call."""
    user_id: str | None = Field(default=None)
    customer_id: str | None = Field(default=None)
    email: str | None = Field(default=None)
    name: str | None = Field(default=None)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip().lower()
        return v or None

    @property
    def owner_id(self) -> str | None:
        """Identifier used for logging and push lookups."""
        return self.user_id or self.customer_id


class RenderedContent(BaseModel):
    """Channel-ready content produced by the orchestrator."""
    title: str
    body: str
    html_body: str | None = None
    action_url: str | None = None
    action_label: str | None = None
    icon: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class DeliveryMeta(BaseModel):
    """Routing metadata handed to every channel adapter."""
    request_id: UUID = Field(default_factory=uuid4)
    notification_type: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    push_category: str = "default"
    appointment_id: str | None = None


class InAppRecordCreate(BaseModel):
    """Payload for a new in-app notification record."""
    customer_id: str | None = None
    notification_type: str
    title: str
    body: str
    action_url: str | None = None
    action_label: str | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    icon: str | None = None
    appointment_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class InAppRecord(InAppRecordCreate):
    """Persisted in-app notification."""
    id: UUID = Field(default_factory=uuid4)
    user_id: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InAppRecordFilter(BaseModel):
    """Filter for listing in-app records."""
    unread_only: bool = False
    notification_type: str | None = None


class Pagination(BaseModel):
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class InAppPage(BaseModel):
    data: list[InAppRecord] = Field(default_factory=list)
    total: int = 0


class NotificationPreference(BaseModel):
    """
    A user's setting for one notification type on one channel.

    Quiet hours are ``HH:MM`` wall-clock strings and may wrap midnight. They
    are compared against the orchestrator's clock: naive host local time by
    default, or the configured ``NOTIFICATION_SERVICE_UTC_OFFSET_MINUTES``.
    """
    notification_type: str
    channel: NotificationChannel
    enabled: bool = True
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_quiet_hours(cls, v: str | None) -> str | None:
        if v is not None and not _QUIET_HOURS_PATTERN.match(v):
            raise ValueError(f"Quiet hours must be HH:MM, got {v!r}")
        return v

    @property
    def has_quiet_hours(self) -> bool:
        return bool(self.quiet_hours_start and self.quiet_hours_end)
