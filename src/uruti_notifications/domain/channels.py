"""
Uruti Notifications - Notification Channels.

Channel adapters for Email (SMTP), Push (Expo) and In-App delivery behind a
common ``ChannelSender`` capability. Every adapter reports failure as data:
``send`` always returns a ``DeliveryResult`` and never raises.

Architecture Layer: Domain/Infrastructure
Principles: Strategy Pattern, Template Method, Dependency Inversion, Async I/O
"""
from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

import aiosmtplib
import httpx
import structlog
from pydantic import BaseModel, Field

from .entities import (
    DeliveryMeta,
    InAppRecordCreate,
    NotificationChannel,
    NotificationPriority,
    Recipient,
    RenderedContent,
)
from .ports import InAppNotificationStore, PushTokenRegistry
from .retry import BackoffPolicy, DeliveryState, RetryExecution, SleepFunc

logger = structlog.get_logger(__name__)


# Newlines and control characters enable header injection
_HEADER_INJECTION_PATTERN = re.compile(r"[\r\n\x00\x0b\x0c]")
_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
EXPO_TOKEN_PREFIX = "ExponentPushToken"
SMTP_NOT_CONFIGURED = "SMTP not configured"


def _sanitize_header(value: str, max_length: int = 998) -> str:
    """
    Sanitize a string for safe use in email headers.

    Args:
        value: The header value to sanitize.
        max_length: Maximum length for the header value (RFC 5322 recommends 998).

    Returns:
        Sanitized string safe for use in email headers.
    """
    if not value:
        return ""
    sanitized = _HEADER_INJECTION_PATTERN.sub("", value)
    return sanitized[:max_length].strip()


def _validate_email_address(email: str) -> bool:
    if not email or len(email) > 254:  # RFC 5321 max length
        return False
    return _EMAIL_PATTERN.match(email) is not None


class ChannelStatus(str, Enum):
    """Channel operational status."""
    ACTIVE = "active"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class ChannelError(Exception):
    """Base exception for channel errors."""
    def __init__(self, channel: NotificationChannel, message: str) -> None:
        self.channel = channel
        super().__init__(f"[{channel.value}] {message}")


class DeliveryError(ChannelError):
    """Raised when notification delivery fails."""
    def __init__(self, channel: NotificationChannel, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(channel, f"Failed to deliver to {recipient}: {reason}")


class PermanentDeliveryError(DeliveryError):
    """Delivery failure that retrying cannot fix (bad address, rejected credentials)."""


class DeliveryResult(BaseModel):
    """Outcome of one channel's delivery for one notification."""
    delivery_id: UUID = Field(default_factory=uuid4)
    channel: NotificationChannel
    recipient: str | None = None
    success: bool
    message_id: str | None = None
    error_message: str | None = None
    attempts: int = Field(default=0, ge=0)
    skipped: bool = False
    delivered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChannelConfig(BaseModel):
    """Base configuration for notification channels."""
    enabled: bool = Field(default=True)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)


class EmailDeliveryMode(str, Enum):
    """Email execution mode. ``DRY_RUN`` logs intent and reports synthetic success."""
    LIVE = "live"
    DRY_RUN = "dry_run"


class EmailConfig(ChannelConfig):
    """Email channel configuration."""
    smtp_host: str = Field(default="localhost")
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str = Field(default="")
    smtp_password: str = Field(default="")
    use_tls: bool = Field(default=False)
    from_email: str = Field(default="noreply@uruti.rw")
    from_name: str = Field(default="Uruti Saluni")
    delivery_mode: EmailDeliveryMode = Field(default=EmailDeliveryMode.LIVE)
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    max_connections: int = Field(default=5, ge=1, le=100)

    @property
    def is_configured(self) -> bool:
        """Usable only with credentials and a non-default host."""
        return bool(self.smtp_username and self.smtp_password and self.smtp_host
                    and self.smtp_host != "localhost")

    @property
    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.backoff_base_seconds,
            multiplier=self.backoff_multiplier,
        )


class PushConfig(ChannelConfig):
    """Expo push configuration."""
    expo_push_url: str = Field(default=EXPO_PUSH_URL)
    access_token: str = Field(default="")
    timeout_seconds: float = Field(default=10.0, ge=1.0, le=300.0)


class ChannelSender(ABC):
    """
    Abstract base class for notification channels.

    Implements Template Method pattern: ``send`` wraps ``_deliver`` and
    converts every exception into a failed ``DeliveryResult``.
    """
    def __init__(self, config: ChannelConfig) -> None:
        self._config = config
        self._status = ChannelStatus.ACTIVE if config.enabled else ChannelStatus.UNAVAILABLE

    @property
    @abstractmethod
    def channel(self) -> NotificationChannel:
        """Return the channel this sender delivers on."""

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_available(self) -> bool:
        return self._status in (ChannelStatus.ACTIVE, ChannelStatus.DEGRADED)

    async def send(
        self,
        recipient: Recipient,
        content: RenderedContent,
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        """
        Deliver rendered content to one recipient.

        Args:
            recipient: Resolved delivery target
            content: Channel-ready title, body and optional HTML
            meta: Request id, notification type, priority and push category

        Returns:
            DeliveryResult; failures are reported, never raised
        """
        if not self.is_available:
            return self._failure(recipient.owner_id, f"Channel {self.channel.value} is unavailable")

        try:
            result = await self._deliver(recipient, content, meta)
        except asyncio.CancelledError:
            raise
        except ChannelError as e:
            logger.warning("notification_delivery_failed", channel=self.channel.value,
                           notification_type=meta.notification_type, error=str(e))
            return self._failure(getattr(e, "recipient", recipient.owner_id), str(e), attempts=1)
        except Exception as e:
            logger.error("notification_channel_crashed", channel=self.channel.value,
                         notification_type=meta.notification_type,
                         error=str(e), error_type=type(e).__name__)
            return self._failure(recipient.owner_id, f"{type(e).__name__}: {e}", attempts=1)

        if result.success:
            logger.info("notification_delivered", channel=self.channel.value,
                        notification_type=meta.notification_type,
                        message_id=result.message_id, attempts=result.attempts)
        else:
            logger.warning("notification_delivery_failed", channel=self.channel.value,
                           notification_type=meta.notification_type, error=result.error_message)
        return result

    @abstractmethod
    async def _deliver(
        self,
        recipient: Recipient,
        content: RenderedContent,
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        """Actual delivery implementation."""

    async def health_check(self) -> bool:
        return self.is_available

    async def aclose(self) -> None:
        """Release pooled resources."""

    def _success(self, recipient: str | None, message_id: str | None, attempts: int = 1,
                 metadata: dict[str, Any] | None = None) -> DeliveryResult:
        return DeliveryResult(channel=self.channel, recipient=recipient, success=True,
                              message_id=message_id, attempts=attempts, metadata=metadata or {})

    def _failure(self, recipient: str | None, error: str, attempts: int = 0,
                 metadata: dict[str, Any] | None = None) -> DeliveryResult:
        return DeliveryResult(channel=self.channel, recipient=recipient, success=False,
                              error_message=error, attempts=attempts, metadata=metadata or {})


@runtime_checkable
class EmailTransport(Protocol):
    """Sends one prepared message and returns its message id."""

    async def send_message(self, message: MIMEMultipart, recipient: str) -> str:
        ...


class SmtpEmailTransport:
    """
    aiosmtplib transport.

    Opens one connection per message, bounded by ``max_connections``
    concurrent sessions, with a per-attempt timeout.
    """
    def __init__(self, config: EmailConfig) -> None:
        self._config = config
        self._semaphore = asyncio.Semaphore(config.max_connections)

    async def send_message(self, message: MIMEMultipart, recipient: str) -> str:
        async with self._semaphore:
            try:
                async with aiosmtplib.SMTP(
                    hostname=self._config.smtp_host,
                    port=self._config.smtp_port,
                    use_tls=self._config.use_tls,
                    timeout=self._config.timeout_seconds,
                ) as smtp:
                    if self._config.smtp_username:
                        await smtp.login(self._config.smtp_username, self._config.smtp_password)
                    await smtp.send_message(message)
            except (aiosmtplib.SMTPAuthenticationError, aiosmtplib.SMTPRecipientsRefused) as e:
                raise PermanentDeliveryError(NotificationChannel.EMAIL, recipient, str(e)) from e
            except (aiosmtplib.SMTPException, OSError) as e:
                raise DeliveryError(NotificationChannel.EMAIL, recipient, str(e)) from e
        return str(message["Message-ID"])


class EmailChannel(ChannelSender):
    """
    Email notification channel.

    Checks run in order: unconfigured transport (live mode only), missing or
    invalid address, dry-run short-circuit, then the retry loop.
    """
    def __init__(
        self,
        config: EmailConfig,
        transport: EmailTransport | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        super().__init__(config)
        self._email_config = config
        self._transport = transport or SmtpEmailTransport(config)
        self._sleep = sleep
        if config.delivery_mode is EmailDeliveryMode.LIVE and not config.is_configured:
            logger.warning("smtp_not_configured", host=config.smtp_host)

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    @property
    def is_configured(self) -> bool:
        return self._email_config.is_configured

    async def health_check(self) -> bool:
        if self._email_config.delivery_mode is EmailDeliveryMode.DRY_RUN:
            return self.is_available
        return self.is_available and self.is_configured

    async def _deliver(
        self,
        recipient: Recipient,
        content: RenderedContent,
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        live = self._email_config.delivery_mode is EmailDeliveryMode.LIVE
        if live and not self.is_configured:
            logger.warning("email_send_skipped_unconfigured", notification_type=meta.notification_type)
            return self._failure(recipient.email, SMTP_NOT_CONFIGURED)

        address = _sanitize_header(recipient.email or "")
        if not address:
            return self._failure(None, "No email address for recipient")
        if not _validate_email_address(address):
            return self._failure(address, f"Invalid email address format: {address[:50]}")

        message = self._build_message(address, content)
        if not live:
            logger.info("email_dry_run", to=address, subject=content.title,
                        notification_type=meta.notification_type)
            return self._success(address, str(message["Message-ID"]), attempts=0,
                                 metadata={"dry_run": True})

        execution: RetryExecution[str] = RetryExecution(
            self._email_config.backoff_policy,
            sleep=self._sleep,
            is_permanent=lambda e: isinstance(e, PermanentDeliveryError),
        )

        async def attempt(number: int) -> str:
            logger.debug("email_delivery_attempt", to=address, attempt=number)
            return await self._transport.send_message(message, address)

        message_id = await execution.run(attempt, describe=lambda mid: mid)
        attempts = len(execution.attempts)
        if execution.state is DeliveryState.SUCCEEDED:
            return self._success(address, message_id, attempts=attempts)

        error = execution.last_error
        reason = error.reason if isinstance(error, DeliveryError) else str(error)
        logger.error("email_delivery_exhausted", to=address, attempts=attempts, error=reason)
        return self._failure(address, f"Failed after {attempts} attempts: {reason}", attempts=attempts)

    def _build_message(self, address: str, content: RenderedContent) -> MIMEMultipart:
        sender_domain = self._email_config.from_email.rpartition("@")[2] or None
        message = MIMEMultipart("alternative")
        message["Subject"] = Header(_sanitize_header(content.title, max_length=200), "utf-8")
        message["From"] = formataddr((
            _sanitize_header(self._email_config.from_name, max_length=100),
            _sanitize_header(self._email_config.from_email),
        ))
        message["To"] = address
        message["Message-ID"] = make_msgid(domain=sender_domain)
        message.attach(MIMEText(content.body, "plain", "utf-8"))
        if content.html_body:
            message.attach(MIMEText(content.html_body, "html", "utf-8"))
        return message


class PushChannel(ChannelSender):
    """
    Expo push notification channel.

    A missing or malformed device token is reported without retry; provider
    delivery is best effort.
    """
    def __init__(
        self,
        config: PushConfig,
        token_registry: PushTokenRegistry,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        self._push_config = config
        self._tokens = token_registry
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._push_config.timeout_seconds)
        return self._client

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.PUSH

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _deliver(
        self,
        recipient: Recipient,
        content: RenderedContent,
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        if not recipient.user_id:
            return self._failure(recipient.owner_id, "No user id for push delivery")
        token = await self._tokens.get_user_push_token(recipient.user_id)
        if not token:
            logger.info("push_token_missing", user_id=recipient.user_id)
            return self._failure(recipient.user_id, "No push token registered")
        if not token.startswith(EXPO_TOKEN_PREFIX):
            return self._failure(recipient.user_id, "Invalid Expo push token")

        payload = {
            "to": token,
            "sound": "default",
            "title": content.title,
            "body": content.body,
            "data": {**content.data, "type": meta.notification_type, "requestId": str(meta.request_id)},
            "channelId": meta.push_category,
            "priority": "high" if meta.priority in (NotificationPriority.HIGH, NotificationPriority.CRITICAL)
            else "default",
        }
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._push_config.access_token:
            headers["Authorization"] = f"Bearer {self._push_config.access_token}"

        client = await self._get_client()
        try:
            response = await client.post(self._push_config.expo_push_url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(self.channel, recipient.user_id, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise DeliveryError(self.channel, recipient.user_id, str(e)) from e

        tickets = data.get("data") if isinstance(data, dict) else None
        ticket = tickets[0] if isinstance(tickets, list) and tickets else tickets
        if isinstance(ticket, dict) and ticket.get("status") == "ok":
            return self._success(recipient.user_id, ticket.get("id"), metadata={"channel_id": meta.push_category})
        error = ticket.get("message") if isinstance(ticket, dict) else None
        return self._failure(recipient.user_id, error or "Push ticket rejected", attempts=1)


class InAppChannel(ChannelSender):
    """In-app channel: writes a notification record through the store."""
    def __init__(self, store: InAppNotificationStore, config: ChannelConfig | None = None) -> None:
        super().__init__(config or ChannelConfig())
        self._store = store

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.IN_APP

    async def _deliver(
        self,
        recipient: Recipient,
        content: RenderedContent,
        meta: DeliveryMeta,
    ) -> DeliveryResult:
        if recipient.owner_id is None:
            logger.warning("in_app_record_ownerless", notification_type=meta.notification_type)
        payload = InAppRecordCreate(
            customer_id=recipient.customer_id,
            notification_type=meta.notification_type,
            title=content.title,
            body=content.body,
            action_url=content.action_url,
            action_label=content.action_label,
            priority=meta.priority,
            icon=content.icon,
            appointment_id=meta.appointment_id,
            metadata=content.data,
        )
        try:
            record = await self._store.create_record(recipient.user_id, payload)
        except Exception as e:
            raise DeliveryError(self.channel, recipient.owner_id or "anonymous", str(e)) from e
        return self._success(recipient.owner_id, str(record.id))


class ChannelRegistry:
    """
    Registry of notification channels.

    Manages channel lifecycle and provides channel resolution.
    """
    def __init__(self) -> None:
        self._channels: dict[NotificationChannel, ChannelSender] = {}
        logger.info("channel_registry_initialized")

    def register_channel(self, sender: ChannelSender) -> None:
        self._channels[sender.channel] = sender
        logger.info("channel_registered", channel=sender.channel.value, status=sender.status.value)

    def get_channel(self, channel: NotificationChannel) -> ChannelSender | None:
        return self._channels.get(channel)

    def get_available_channels(self) -> list[ChannelSender]:
        return [c for c in self._channels.values() if c.is_available]

    def list_channels(self) -> list[tuple[NotificationChannel, ChannelStatus]]:
        return [(c.channel, c.status) for c in self._channels.values()]

    async def health_check_all(self) -> dict[NotificationChannel, bool]:
        """Check health of all channels."""
        results = {}
        for channel, sender in self._channels.items():
            results[channel] = await sender.health_check()
        return results

    async def aclose(self) -> None:
        for sender in self._channels.values():
            await sender.aclose()
