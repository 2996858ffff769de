"""
Uruti Notifications - Notification Orchestration.

Receives a typed domain event, resolves channels and priority through the
delivery policy, renders channel content and fans delivery out to every
resolved channel concurrently. A failing channel never blocks, aborts or
rolls back another, and ``notify`` never raises for channel failures.

Architecture Layer: Domain
Principles: Facade Pattern, Settle-All Fan-out, Async Processing
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field
from structlog.contextvars import bound_contextvars

from .channels import ChannelRegistry, DeliveryResult
from .entities import (
    DeliveryMeta,
    DeliveryOptions,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    Recipient,
    RenderedContent,
    UserProfile,
    template_name_for,
)
from .messages import message_for
from .policy import DeliveryPolicy
from .ports import PreferenceStore, UserDirectory
from .templates import TemplateEngine, html_to_text

logger = structlog.get_logger(__name__)

UNKNOWN_TYPE_TAG = "unknown"
_DATA_KEYS_EXCLUDED = frozenset({"saleItems", "recipientEmail"})


class NotificationStatus(str, Enum):
    """Aggregate status of one notify call."""
    DELIVERED = "delivered"
    PARTIALLY_DELIVERED = "partially_delivered"
    FAILED = "failed"
    SKIPPED = "skipped"
    NO_CHANNELS = "no_channels"


class NotificationOutcome(BaseModel):
    """Per-channel results of one notify call."""
    request_id: UUID
    notification_type: str
    status: NotificationStatus
    priority: NotificationPriority
    results: dict[NotificationChannel, DeliveryResult] = Field(default_factory=dict)
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time_ms: float = 0.0

    def result_for(self, channel: NotificationChannel) -> DeliveryResult | None:
        return self.results.get(channel)


def _as_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _text(value: Any) -> str | None:
    """Non-empty string values only; anything else defers to the policy default."""
    if isinstance(value, str) and value.strip():
        return value
    return None


class NotificationOrchestrator:
    """
    Coordinates policy, rendering and channel delivery.

    Stateless between calls: every ``notify`` is a one-shot fan-out.
    """
    def __init__(
        self,
        engine: TemplateEngine,
        policy: DeliveryPolicy,
        channels: ChannelRegistry,
        user_directory: UserDirectory | None = None,
        preferences: PreferenceStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._engine = engine
        self._policy = policy
        self._channels = channels
        self._users = user_directory
        self._preferences = preferences
        self._clock = clock or datetime.now
        logger.info("notification_orchestrator_initialized",
                    channels=[c.value for c, _ in channels.list_channels()])

    @property
    def channels(self) -> ChannelRegistry:
        return self._channels

    def get_available_channels(self) -> list[NotificationChannel]:
        return [c.channel for c in self._channels.get_available_channels()]

    async def notify(
        self,
        notification_type: NotificationType | str | None,
        context: Mapping[str, Any] | None = None,
        options: DeliveryOptions | Mapping[str, Any] | None = None,
    ) -> NotificationOutcome:
        """
        Send one notification on every resolved channel.

        Args:
            notification_type: Known type or raw tag; unknown tags use the
                default template and an empty channel set
            context: Template data; read, never modified
            options: Explicit channels and/or priority

        Returns:
            NotificationOutcome with one result per dispatched channel
        """
        if options is None:
            options = DeliveryOptions()
        elif not isinstance(options, DeliveryOptions):
            options = DeliveryOptions.model_validate(options)

        resolved = NotificationType.from_tag(notification_type)
        type_tag = resolved.value if resolved else template_name_for(notification_type or UNKNOWN_TYPE_TAG)
        request_id = uuid4()

        with bound_contextvars(request_id=str(request_id), notification_type=type_tag):
            started = time.perf_counter()
            source = dict(context or {})
            if resolved is None:
                logger.warning("notification_type_unknown", tag=str(notification_type))

            user = await self._find_user(_as_str(source.get("userId")))
            channels = self._policy.resolve_channels(resolved, options.channels, user)
            priority = self._policy.resolve_priority(resolved, options.priority)
            logger.info("notification_send_started", channels=sorted(c.value for c in channels),
                        priority=priority.value, user_id=source.get("userId"),
                        customer_id=source.get("customerId"))

            if not channels:
                outcome = NotificationOutcome(
                    request_id=request_id,
                    notification_type=type_tag,
                    status=NotificationStatus.NO_CHANNELS,
                    priority=priority,
                    processing_time_ms=(time.perf_counter() - started) * 1000,
                )
                logger.info("notification_send_completed", status=outcome.status.value)
                return outcome

            recipient = self._resolve_recipient(source, user)
            message = message_for(resolved)
            action_url, action_label = self._policy.action_for(resolved, source)
            text_values = {
                **message.text_values(source),
                "actionUrl": _text(source.get("actionUrl")) or action_url,
                "actionLabel": _text(source.get("actionLabel")) or action_label,
            }
            title = self._engine.render_string(message.title, text_values)
            body = self._engine.render_string(message.message, text_values)
            template_values = {
                **message.template_values(source),
                "title": title,
                "body": body,
                "actionUrl": text_values["actionUrl"],
                "actionLabel": text_values["actionLabel"],
                "unsubscribeUrl": self._policy.unsubscribe_url(),
            }
            content = RenderedContent(
                title=title,
                body=body,
                action_url=text_values["actionUrl"],
                action_label=text_values["actionLabel"],
                icon=self._policy.icon_for(resolved),
                data={k: v for k, v in source.items()
                      if k not in _DATA_KEYS_EXCLUDED and isinstance(v, (str, int, float, bool))},
            )
            meta = DeliveryMeta(
                request_id=request_id,
                notification_type=type_tag,
                priority=priority,
                push_category=self._policy.push_category(resolved),
                appointment_id=_as_str(source.get("appointmentId")),
            )

            ordered = [c for c in NotificationChannel if c in channels]
            settled = await asyncio.gather(
                *(self._dispatch(c, recipient, content, template_values, meta) for c in ordered),
                return_exceptions=True,
            )

            results: dict[NotificationChannel, DeliveryResult] = {}
            for channel, result in zip(ordered, settled):
                if isinstance(result, DeliveryResult):
                    results[channel] = result
                else:
                    logger.error("notification_delivery_exception", channel=channel.value,
                                 error=str(result), error_type=type(result).__name__)
                    results[channel] = DeliveryResult(
                        channel=channel,
                        recipient=recipient.owner_id,
                        success=False,
                        error_message=f"{type(result).__name__}: {result}",
                    )

            outcome = self._aggregate(request_id, type_tag, priority, results, started)
            logger.info("notification_send_completed", status=outcome.status.value,
                        successful=outcome.successful, failed=outcome.failed,
                        skipped=outcome.skipped, processing_time_ms=outcome.processing_time_ms)
            return outcome

    async def _find_user(self, user_id: str | None) -> UserProfile | None:
        if self._users is None or user_id is None:
            return None
        try:
            return await self._users.find_user(user_id)
        except Exception as e:
            logger.warning("user_directory_lookup_failed", user_id=user_id, error=str(e))
            return None

    def _resolve_recipient(self, source: Mapping[str, Any], user: UserProfile | None) -> Recipient:
        email = _as_str(source.get("recipientEmail")) or (user.email if user else None)
        name = _as_str(source.get("customerName")) or (user.full_name if user else None)
        return Recipient(
            user_id=_as_str(source.get("userId")),
            customer_id=_as_str(source.get("customerId")),
            email=email,
            name=name,
        )

    async def _dispatch(
        self,
        channel: NotificationChannel,
        recipient: Recipient,
        content: RenderedContent,
        template_values: Mapping[str, Any],
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        sender = self._channels.get_channel(channel)
        if sender is None:
            logger.warning("notification_channel_not_found", channel=channel.value)
            return DeliveryResult(channel=channel, recipient=recipient.owner_id, success=False,
                                  error_message=f"Channel {channel.value} not configured")

        if not await self._preference_allows(channel, recipient, meta):
            return DeliveryResult(channel=channel, recipient=recipient.owner_id, success=False,
                                  skipped=True, error_message="Suppressed by user preference")

        if channel is NotificationChannel.EMAIL:
            html_body = self._engine.render(meta.notification_type, template_values)
            content = content.model_copy(update={"html_body": html_body, "body": html_to_text(html_body)})

        try:
            return await sender.send(recipient, content, meta)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("notification_channel_contract_broken", channel=channel.value,
                         error=str(e), error_type=type(e).__name__)
            return DeliveryResult(channel=channel, recipient=recipient.owner_id, success=False,
                                  error_message=f"{type(e).__name__}: {e}")

    async def _preference_allows(
        self,
        channel: NotificationChannel,
        recipient: Recipient,
        meta: DeliveryMeta,
    ) -> bool:
        owner = recipient.owner_id
        if self._preferences is None or owner is None:
            return True
        try:
            preference = await self._preferences.get_preference(owner, meta.notification_type, channel)
        except Exception as e:
            logger.warning("preference_lookup_failed", channel=channel.value, error=str(e))
            return True
        allowed = self._policy.allows(preference, self._clock())
        if not allowed:
            logger.info("notification_channel_suppressed", channel=channel.value)
        return allowed

    def _aggregate(
        self,
        request_id: UUID,
        type_tag: str,
        priority: NotificationPriority,
        results: dict[NotificationChannel, DeliveryResult],
        started: float,
    ) -> NotificationOutcome:
        skipped = sum(1 for r in results.values() if r.skipped)
        successful = sum(1 for r in results.values() if r.success)
        failed = len(results) - successful - skipped

        if skipped == len(results):
            status = NotificationStatus.SKIPPED
        elif failed == 0:
            status = NotificationStatus.DELIVERED
        elif successful == 0:
            status = NotificationStatus.FAILED
        else:
            status = NotificationStatus.PARTIALLY_DELIVERED

        return NotificationOutcome(
            request_id=request_id,
            notification_type=type_tag,
            status=status,
            priority=priority,
            results=results,
            successful=successful,
            failed=failed,
            skipped=skipped,
            processing_time_ms=(time.perf_counter() - started) * 1000,
        )
