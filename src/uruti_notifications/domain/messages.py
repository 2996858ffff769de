"""
Uruti Notifications - Message Catalog.

Per-type title and message templates for the text channels (in-app and
push) and the email subject line, plus the default values merged into the
email template variables.
"""
from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field

from .entities import NotificationType

CURRENCY = "RWF"


def format_money(value: Any) -> str:
    """Format a numeric amount as ``RWF 12,500``; other values pass through."""
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        return str(value)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    if amount.is_integer():
        return f"{CURRENCY} {int(amount):,}"
    return f"{CURRENCY} {amount:,.2f}"


class MessageTemplate(BaseModel):
    """Title and message for one notification type."""
    title: str
    message: str
    defaults: dict[str, Any] = Field(default_factory=dict)
    money_fields: tuple[str, ...] = ()

    model_config = {"frozen": True}

    def text_values(self, context: Mapping[str, Any]) -> dict[str, Any]:
        """Context values for title/message rendering, money fields formatted."""
        values = dict(context)
        for field in self.money_fields:
            if values.get(field):
                values[field] = format_money(values[field])
        return values

    def template_values(self, context: Mapping[str, Any]) -> dict[str, Any]:
        """Email template values: defaults for absent or empty keys, then context."""
        values = self.text_values(context)
        for key, default in self.defaults.items():
            if values.get(key) in (None, ""):
                values[key] = default
        return values


_APPOINTMENT_DEFAULTS = {"customerName": "Customer", "salonName": "Salon", "serviceName": "Service"}
_CUSTOMER = "{{#if customerName}}{{customerName}}{{else}}A customer{{/if}}"
_CUSTOMERS = "{{#if customerName}}{{customerName}}'s{{else}}A customer's{{/if}}"
_SERVICE = "{{#if serviceName}}{{serviceName}}{{else}}a service{{/if}}"
_PRODUCT = "{{#if productName}}{{productName}}{{else}}Unknown{{/if}}"

GENERIC_MESSAGE = MessageTemplate(
    title="{{#if title}}{{title}}{{else}}Notification{{/if}}",
    message="{{#if message}}{{message}}{{else}}You have a new notification.{{/if}}",
)

_MESSAGES: dict[NotificationType, MessageTemplate] = {
    NotificationType.APPOINTMENT_BOOKED: MessageTemplate(
        title=(
            "{{#if userId}}{{#if isEmployee}}New Booking Assigned{{else}}New Appointment Booked{{/if}}"
            "{{else}}Appointment Booked{{/if}}"
        ),
        message=(
            "{{#if userId}}"
            "{{#if isEmployee}}You have a new booking with "
            "{{#if customerName}}{{customerName}}{{else}}a customer{{/if}} for " + _SERVICE
            + " on {{appointmentDate}} at {{appointmentTime}}."
            "{{else}}" + _CUSTOMER + " has booked an appointment for " + _SERVICE + ".{{/if}}"
            "{{else}}Your appointment at {{salonName}} for {{serviceName}} on {{appointmentDate}} "
            "at {{appointmentTime}} has been booked.{{/if}}"
        ),
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.APPOINTMENT_REMINDER: MessageTemplate(
        title="Appointment Reminder",
        message=(
            "Reminder: Your appointment is scheduled for {{appointmentDate}}"
            "{{#if appointmentTime}} at {{appointmentTime}}{{/if}}."
        ),
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.APPOINTMENT_CONFIRMED: MessageTemplate(
        title="Appointment Confirmed",
        message=(
            "{{#if userId}}You confirmed {{#if customerName}}{{customerName}}'s{{else}}a customer's{{/if}} "
            "appointment.{{else}}Your appointment has been confirmed!{{/if}}"
        ),
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.APPOINTMENT_CANCELLED: MessageTemplate(
        title="Appointment Cancelled",
        message="{{#if userId}}" + _CUSTOMERS + " appointment has been cancelled."
        "{{else}}Your appointment has been cancelled.{{/if}}",
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.APPOINTMENT_RESCHEDULED: MessageTemplate(
        title="Appointment Rescheduled",
        message="{{#if userId}}" + _CUSTOMERS + " appointment has been rescheduled."
        "{{else}}Your appointment has been rescheduled.{{/if}}",
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.APPOINTMENT_COMPLETED: MessageTemplate(
        title="{{#if userId}}Appointment Completed{{else}}Thank You!{{/if}}",
        message="{{#if userId}}" + _CUSTOMERS + " appointment has been completed."
        "{{else}}Thank you for visiting {{#if salonName}}{{salonName}}{{else}}us{{/if}}!{{/if}}",
        defaults={"customerName": "Customer", "salonName": "Salon"},
    ),
    NotificationType.APPOINTMENT_NO_SHOW: MessageTemplate(
        title="{{#if userId}}No-Show{{else}}Missed Appointment{{/if}}",
        message="{{#if userId}}" + _CUSTOMER + " did not show up for their appointment."
        "{{else}}You missed your appointment at {{#if salonName}}{{salonName}}{{else}}the salon{{/if}}.{{/if}}",
        defaults=_APPOINTMENT_DEFAULTS,
    ),
    NotificationType.SALE_COMPLETED: MessageTemplate(
        title="{{#if userId}}New Sale Completed{{else}}Sale Receipt{{/if}}",
        message="{{#if userId}}A sale of {{saleAmount}} was completed"
        "{{#if customerName}} for {{customerName}}{{/if}}.{{else}}Thank you for your purchase!{{/if}}",
        defaults={"customerName": "Customer", "salonName": "Salon"},
        money_fields=("saleAmount",),
    ),
    NotificationType.PAYMENT_RECEIVED: MessageTemplate(
        title="Payment Received",
        message="Payment{{#if amount}} of {{amount}}{{/if}} has been received.",
        money_fields=("amount",),
    ),
    NotificationType.PAYMENT_FAILED: MessageTemplate(
        title="Payment Failed",
        message="Payment failed. Please try again.",
        defaults={"errorMessage": "Unknown error"},
        money_fields=("amount",),
    ),
    NotificationType.COMMISSION_EARNED: MessageTemplate(
        title="Commission Earned",
        message="You have earned a new commission{{#if commissionAmount}} of {{commissionAmount}}{{/if}}!",
        money_fields=("commissionAmount",),
    ),
    NotificationType.COMMISSION_PAID: MessageTemplate(
        title="Commission Paid",
        message="Your commission{{#if commissionAmount}} of {{commissionAmount}}{{/if}} has been paid!",
        money_fields=("commissionAmount",),
    ),
    NotificationType.COMMISSION_UPDATED: MessageTemplate(
        title="Commission Updated",
        message="Your commission has been updated.",
        money_fields=("commissionAmount",),
    ),
    NotificationType.POINTS_EARNED: MessageTemplate(
        title="Loyalty Points Earned",
        message="You've earned {{#if pointsEarned}}{{pointsEarned}}{{else}}0{{/if}} loyalty points!",
        defaults={"customerName": "Customer", "pointsEarned": 0, "pointsBalance": 0},
    ),
    NotificationType.POINTS_REDEEMED: MessageTemplate(
        title="Points Redeemed",
        message="You've redeemed {{#if pointsRedeemed}}{{pointsRedeemed}}{{else}}0{{/if}} loyalty points.",
        defaults={"customerName": "Customer", "pointsRedeemed": 0, "pointsBalance": 0},
    ),
    NotificationType.REWARD_AVAILABLE: MessageTemplate(
        title="Reward Available",
        message="A new reward{{#if rewardName}} ({{rewardName}}){{/if}} is available for you!",
        defaults={"customerName": "Customer", "rewardName": "Reward"},
    ),
    NotificationType.VIP_STATUS_ACHIEVED: MessageTemplate(
        title="VIP Status Achieved!",
        message="Congratulations! You've achieved VIP status!",
        defaults={"customerName": "Customer"},
    ),
    NotificationType.LOW_STOCK_ALERT: MessageTemplate(
        title="Low Stock Alert",
        message='Product "' + _PRODUCT + '" is running low in stock.',
        defaults={"productName": "Product", "stockLevel": 0, "minStock": 0},
    ),
    NotificationType.OUT_OF_STOCK: MessageTemplate(
        title="Out of Stock",
        message='Product "' + _PRODUCT + '" is out of stock!',
        defaults={"productName": "Product"},
    ),
    NotificationType.STOCK_REPLENISHED: MessageTemplate(
        title="Stock Replenished",
        message='Stock for "{{#if productName}}{{productName}}{{else}}Product{{/if}}" has been replenished.',
        defaults={"productName": "Product", "stockLevel": 0},
    ),
    NotificationType.SALON_UPDATE: MessageTemplate(
        title="Salon Update",
        message="{{#if message}}{{message}}{{else}}Your salon information has been updated.{{/if}}",
        defaults={"salonName": "Salon"},
    ),
    NotificationType.MEMBERSHIP_STATUS: MessageTemplate(
        title="Membership Status Update",
        message="Your membership status has been updated to {{#if status}}{{status}}{{else}}unknown{{/if}}.",
        defaults={"salonName": "Salon"},
        money_fields=("balance",),
    ),
    NotificationType.EMPLOYEE_ASSIGNED: MessageTemplate(
        title="New Job Assignment",
        message="You have been hired at {{#if salonName}}{{salonName}}{{else}}a salon{{/if}}!",
        defaults={"salonName": "Salon", "employeeName": "Employee"},
    ),
    NotificationType.PERMISSION_GRANTED: MessageTemplate(
        title="Permissions Granted",
        message="You have been granted new permissions"
        "{{#if salonName}} at {{salonName}}{{/if}}{{#if permissions}}: {{permissions}}{{/if}}.",
        defaults={"salonName": "Salon"},
    ),
    NotificationType.PERMISSION_REVOKED: MessageTemplate(
        title="Permissions Updated",
        message="Some of your permissions{{#if salonName}} at {{salonName}}{{/if}} have been removed"
        "{{#if permissions}}: {{permissions}}{{/if}}.",
        defaults={"salonName": "Salon"},
    ),
    NotificationType.PASSWORD_RESET: MessageTemplate(
        title="Reset Your Password",
        message="We received a request to reset your password.",
        defaults={"customerName": "there"},
    ),
    NotificationType.EMAIL_CHANGE_VERIFICATION: MessageTemplate(
        title="Confirm Your Email Change",
        message="Confirm the change of the email address on your account.",
        defaults={"customerName": "there"},
    ),
    NotificationType.SYSTEM_ALERT: MessageTemplate(
        title="System Alert",
        message="{{#if message}}{{message}}{{else}}A system alert has been issued.{{/if}}",
    ),
    NotificationType.SECURITY_ALERT: MessageTemplate(
        title="Security Alert",
        message="{{#if message}}{{message}}{{else}}A security alert has been issued.{{/if}}",
    ),
}

MESSAGE_CATALOG: Mapping[NotificationType, MessageTemplate] = MappingProxyType(_MESSAGES)


def message_for(notification_type: NotificationType | None) -> MessageTemplate:
    """Message template for a type, or the generic one for unknown types."""
    if notification_type is None:
        return GENERIC_MESSAGE
    return MESSAGE_CATALOG.get(notification_type, GENERIC_MESSAGE)
