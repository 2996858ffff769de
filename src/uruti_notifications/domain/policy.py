"""
Uruti Notifications - Delivery Policy.

Static rule table mapping each notification type to its default channels,
priority, icon, push category and action link, plus per-user preference
checks (opt-out and quiet hours).
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, time
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import BaseModel, Field

from .entities import (
    NotificationChannel,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    UserProfile,
)

logger = structlog.get_logger(__name__)

EMAIL = NotificationChannel.EMAIL
PUSH = NotificationChannel.PUSH
IN_APP = NotificationChannel.IN_APP


class ActionLink(BaseModel):
    """
    Deep link for a notification's call to action.

    ``path`` is appended to the frontend base URL. When ``id_field`` is set the
    context value is appended as a path segment; without it ``fallback_path``
    (if any) is used and otherwise no link is produced.
    """
    label: str
    path: str
    id_field: str | None = None
    fallback_path: str | None = None

    model_config = {"frozen": True}

    def build(self, base_url: str, context: Mapping[str, Any]) -> str | None:
        base = base_url.rstrip("/")
        if self.id_field is None:
            return f"{base}{self.path}"
        identifier = context.get(self.id_field)
        if identifier:
            return f"{base}{self.path}/{identifier}"
        if self.fallback_path:
            return f"{base}{self.fallback_path}"
        return None


class DeliveryRule(BaseModel):
    """Defaults for one notification type."""
    channels: frozenset[NotificationChannel] = Field(default_factory=lambda: frozenset({IN_APP}))
    priority: NotificationPriority = NotificationPriority.NORMAL
    icon: str = "bell"
    push_category: str = "default"
    action: ActionLink | None = None

    model_config = {"frozen": True}


def push_category_for(notification_type: str) -> str:
    """Android notification channel for a type tag."""
    if notification_type.startswith("appointment_"):
        return "appointments"
    if notification_type.startswith(("payment_", "sale_", "commission_")):
        return "payments"
    if notification_type.startswith("points_") or notification_type in ("reward_available", "vip_status_achieved"):
        return "promotions"
    return "default"


_VIEW_APPOINTMENT = ActionLink(label="View Appointment", path="/appointments", id_field="appointmentId")
_VIEW_COMMISSIONS = ActionLink(label="View Commissions", path="/commissions")
_VIEW_POINTS = ActionLink(label="View Points", path="/customers", id_field="customerId")
_MANAGE_INVENTORY = ActionLink(
    label="Manage Inventory", path="/inventory/products", id_field="productId", fallback_path="/inventory",
)

_ALL = frozenset({IN_APP, EMAIL, PUSH})
_APP_AND_PUSH = frozenset({IN_APP, PUSH})
_APP_AND_EMAIL = frozenset({IN_APP, EMAIL})


def _rule(
    notification_type: NotificationType,
    channels: frozenset[NotificationChannel],
    priority: NotificationPriority,
    icon: str,
    action: ActionLink | None = None,
) -> tuple[NotificationType, DeliveryRule]:
    return notification_type, DeliveryRule(
        channels=channels,
        priority=priority,
        icon=icon,
        push_category=push_category_for(notification_type.value),
        action=action,
    )


_P = NotificationPriority
_T = NotificationType

DEFAULT_RULES: Mapping[NotificationType, DeliveryRule] = MappingProxyType(dict([
    _rule(_T.APPOINTMENT_BOOKED, _ALL, _P.HIGH, "calendar", _VIEW_APPOINTMENT),
    _rule(_T.APPOINTMENT_REMINDER, _ALL, _P.HIGH, "bell", _VIEW_APPOINTMENT),
    _rule(_T.APPOINTMENT_CONFIRMED, _ALL, _P.NORMAL, "check-circle", _VIEW_APPOINTMENT),
    _rule(_T.APPOINTMENT_CANCELLED, _ALL, _P.HIGH, "x-circle"),
    _rule(_T.APPOINTMENT_RESCHEDULED, _ALL, _P.HIGH, "calendar-clock"),
    _rule(_T.APPOINTMENT_COMPLETED, _ALL, _P.LOW, "check", _VIEW_APPOINTMENT),
    _rule(_T.APPOINTMENT_NO_SHOW, _ALL, _P.NORMAL, "alert-circle"),
    _rule(_T.SALE_COMPLETED, _ALL, _P.LOW, "dollar-sign",
          ActionLink(label="View Sale", path="/sales", id_field="saleId")),
    _rule(_T.PAYMENT_RECEIVED, _ALL, _P.NORMAL, "credit-card"),
    _rule(_T.PAYMENT_FAILED, _ALL, _P.HIGH, "alert-triangle"),
    _rule(_T.COMMISSION_EARNED, _ALL, _P.NORMAL, "trending-up", _VIEW_COMMISSIONS),
    _rule(_T.COMMISSION_PAID, _ALL, _P.HIGH, "check-circle", _VIEW_COMMISSIONS),
    _rule(_T.COMMISSION_UPDATED, _APP_AND_EMAIL, _P.LOW, "edit"),
    _rule(_T.POINTS_EARNED, _ALL, _P.LOW, "star", _VIEW_POINTS),
    _rule(_T.POINTS_REDEEMED, _APP_AND_PUSH, _P.NORMAL, "gift"),
    _rule(_T.REWARD_AVAILABLE, _APP_AND_PUSH, _P.NORMAL, "award"),
    _rule(_T.VIP_STATUS_ACHIEVED, _ALL, _P.HIGH, "crown"),
    _rule(_T.LOW_STOCK_ALERT, _ALL, _P.HIGH, "package", _MANAGE_INVENTORY),
    _rule(_T.OUT_OF_STOCK, _ALL, _P.CRITICAL, "alert-triangle", _MANAGE_INVENTORY),
    _rule(_T.STOCK_REPLENISHED, _APP_AND_PUSH, _P.LOW, "check-circle"),
    _rule(_T.SALON_UPDATE, _APP_AND_PUSH, _P.NORMAL, "info"),
    _rule(_T.MEMBERSHIP_STATUS, _ALL, _P.HIGH, "user-check"),
    _rule(_T.EMPLOYEE_ASSIGNED, _ALL, _P.HIGH, "briefcase"),
    _rule(_T.PERMISSION_GRANTED, _ALL, _P.NORMAL, "key"),
    _rule(_T.PERMISSION_REVOKED, _ALL, _P.HIGH, "lock"),
    _rule(_T.PASSWORD_RESET, _APP_AND_EMAIL, _P.HIGH, "shield"),
    _rule(_T.EMAIL_CHANGE_VERIFICATION, _APP_AND_EMAIL, _P.HIGH, "mail"),
    _rule(_T.SYSTEM_ALERT, _APP_AND_PUSH, _P.NORMAL, "alert-circle"),
    _rule(_T.SECURITY_ALERT, _ALL, _P.CRITICAL, "shield-alert"),
]))


def _parse_clock(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def in_quiet_hours(now: time, start: time, end: time) -> bool:
    """Half-open window ``[start, end)``; wraps midnight when start > end."""
    if start > end:
        return now >= start or now < end
    return start <= now < end


class DeliveryPolicy:
    """
    Resolves channels, priority and presentation defaults per notification.

    Explicit caller values always win. Unknown types resolve to no channels
    and normal priority.
    """

    def __init__(
        self,
        rules: Mapping[NotificationType, DeliveryRule] | None = None,
        frontend_url: str = "http://localhost:3000",
    ) -> None:
        self._rules = MappingProxyType(dict(DEFAULT_RULES if rules is None else rules))
        self._frontend_url = frontend_url.rstrip("/")

    @property
    def rules(self) -> Mapping[NotificationType, DeliveryRule]:
        return self._rules

    @property
    def frontend_url(self) -> str:
        return self._frontend_url

    def rule_for(self, notification_type: NotificationType | None) -> DeliveryRule | None:
        if notification_type is None:
            return None
        return self._rules.get(notification_type)

    def resolve_channels(
        self,
        notification_type: NotificationType | None,
        explicit: Iterable[NotificationChannel] | None = None,
        user: UserProfile | None = None,
    ) -> frozenset[NotificationChannel]:
        """
        Channels to dispatch for one notification.

        A user's preferred channels narrow the default set; the in-app
        channel is always kept.
        """
        if explicit is not None:
            return frozenset(explicit)
        rule = self.rule_for(notification_type)
        if rule is None:
            logger.warning("delivery_rule_missing", notification_type=getattr(notification_type, "value", None))
            return frozenset()
        channels = rule.channels
        if user is not None and user.preferred_channels is not None:
            channels = (channels & frozenset(user.preferred_channels)) | (channels & {IN_APP})
        return frozenset(channels)

    def resolve_priority(
        self,
        notification_type: NotificationType | None,
        explicit: NotificationPriority | None = None,
    ) -> NotificationPriority:
        if explicit is not None:
            return explicit
        rule = self.rule_for(notification_type)
        return rule.priority if rule else NotificationPriority.NORMAL

    def icon_for(self, notification_type: NotificationType | None) -> str:
        rule = self.rule_for(notification_type)
        return rule.icon if rule else "bell"

    def push_category(self, notification_type: NotificationType | None) -> str:
        rule = self.rule_for(notification_type)
        return rule.push_category if rule else "default"

    def action_for(
        self,
        notification_type: NotificationType | None,
        context: Mapping[str, Any],
    ) -> tuple[str | None, str | None]:
        """(action_url, action_label) for the type, or (None, None)."""
        rule = self.rule_for(notification_type)
        if rule is None or rule.action is None:
            return None, None
        return rule.action.build(self._frontend_url, context), rule.action.label

    def unsubscribe_url(self) -> str:
        return f"{self._frontend_url}/settings/notifications"

    def allows(self, preference: NotificationPreference | None, now: datetime | None = None) -> bool:
        """
        Whether a stored preference permits delivery right now.

        No preference means opted in.
        """
        if preference is None:
            return True
        if not preference.enabled:
            return False
        if preference.has_quiet_hours:
            current = (now or datetime.now()).time().replace(second=0, microsecond=0)
            if in_quiet_hours(
                current,
                _parse_clock(preference.quiet_hours_start),
                _parse_clock(preference.quiet_hours_end),
            ):
                logger.debug("notification_in_quiet_hours", channel=preference.channel.value,
                             notification_type=preference.notification_type)
                return False
        return True
