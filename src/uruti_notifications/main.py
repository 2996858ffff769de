"""
Uruti Notifications - Runtime Wiring.

Structured logging setup, the orchestrator factory and an async lifespan
that owns the orchestrator's pooled resources.

Architecture Layer: Infrastructure
Principles: 12-Factor App, Dependency Injection, Configuration Externalization
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog

from .config import Environment, NotificationServiceConfig
from .domain.channels import ChannelRegistry, EmailChannel, EmailTransport, InAppChannel, PushChannel
from .domain.policy import DeliveryPolicy
from .domain.ports import InAppNotificationStore, PreferenceStore, PushTokenRegistry, UserDirectory
from .domain.retry import SleepFunc
from .domain.service import NotificationOrchestrator
from .domain.templates import TemplateCatalog, TemplateEngine
from .infrastructure.memory import InMemoryNotificationStore, InMemoryPushTokenRegistry

logger = structlog.get_logger(__name__)

_orchestrator: NotificationOrchestrator | None = None


def configure_logging(config: NotificationServiceConfig) -> None:
    """Install the structlog processor chain for the configured format and level."""
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.observability.log_format == "console" or config.service.env == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.service.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_notification_orchestrator(
    config: NotificationServiceConfig | None = None,
    *,
    in_app_store: InAppNotificationStore | None = None,
    push_tokens: PushTokenRegistry | None = None,
    user_directory: UserDirectory | None = None,
    preferences: PreferenceStore | None = None,
    email_transport: EmailTransport | None = None,
    http_client: httpx.AsyncClient | None = None,
    sleep: SleepFunc | None = None,
) -> NotificationOrchestrator:
    """
    Factory function to create a configured NotificationOrchestrator.

    Collaborators that are not supplied fall back to in-memory implementations.

    Args:
        config: Aggregate configuration; loaded from the environment when omitted
        in_app_store: In-app notification store
        push_tokens: Push-token registry
        user_directory: Optional user directory for address and preference lookup
        preferences: Optional per-user preference store
        email_transport: Email transport; defaults to SMTP
        http_client: Shared httpx client for the push channel
        sleep: Awaitable sleep used between email retries

    Returns:
        Configured NotificationOrchestrator instance
    """
    config = config or NotificationServiceConfig.load()

    catalog = TemplateCatalog(
        brand_name=config.links.brand_name,
        brand_tagline=config.links.brand_tagline,
    )
    policy = DeliveryPolicy(frontend_url=config.links.frontend_url)
    registry = ChannelRegistry()

    registry.register_channel(InAppChannel(in_app_store or InMemoryNotificationStore()))
    if config.email.enabled:
        registry.register_channel(EmailChannel(
            config.email.to_channel_config(),
            transport=email_transport,
            sleep=sleep,
        ))
    if config.push.enabled:
        registry.register_channel(PushChannel(
            config.push.to_channel_config(),
            push_tokens or InMemoryPushTokenRegistry(),
            client=http_client,
        ))

    return NotificationOrchestrator(
        engine=TemplateEngine(catalog),
        policy=policy,
        channels=registry,
        user_directory=user_directory,
        preferences=preferences,
        clock=config.quiet_hours_clock(),
    )


def get_notification_orchestrator() -> NotificationOrchestrator:
    """Get the orchestrator owned by the running lifespan."""
    if _orchestrator is None:
        raise RuntimeError("Notification orchestrator not initialized")
    return _orchestrator


@asynccontextmanager
async def notification_runtime(
    config: NotificationServiceConfig | None = None,
    **collaborators,
) -> AsyncIterator[NotificationOrchestrator]:
    """Configure logging, build the orchestrator and close its channels on exit."""
    global _orchestrator

    config = config or NotificationServiceConfig.load()
    configure_logging(config)
    logger.info("notification_runtime_starting",
                service=config.service.name,
                env=config.service.env.value,
                channels=config.get_enabled_channels())

    _orchestrator = create_notification_orchestrator(config, **collaborators)
    logger.info("notification_runtime_ready")
    try:
        yield _orchestrator
    finally:
        await _orchestrator.channels.aclose()
        _orchestrator = None
        logger.info("notification_runtime_shutdown")
