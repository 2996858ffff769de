"""
Unit tests for runtime wiring.
"""
from datetime import timedelta

import httpx
import pytest
import structlog

from uruti_notifications.config import (
    EmailChannelConfig,
    NotificationServiceConfig,
    ObservabilityConfig,
    PushChannelConfig,
    ServiceConfiguration,
)
from uruti_notifications.domain.entities import NotificationChannel, NotificationType
from uruti_notifications.domain.service import NotificationStatus
from uruti_notifications.main import (
    configure_logging,
    create_notification_orchestrator,
    get_notification_orchestrator,
    notification_runtime,
)


@pytest.fixture
def config():
    return NotificationServiceConfig(
        email=EmailChannelConfig(enabled=True),
        push=PushChannelConfig(enabled=True),
        observability=ObservabilityConfig(log_format="console"),
    )


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestFactory:
    """Tests for create_notification_orchestrator."""

    def test_registers_enabled_channels(self, config, in_app_store):
        """Test in-app is always registered and the others follow configuration."""
        orchestrator = create_notification_orchestrator(config, in_app_store=in_app_store)
        assert orchestrator.get_available_channels() == [
            NotificationChannel.IN_APP, NotificationChannel.EMAIL, NotificationChannel.PUSH,
        ]

    def test_configured_offset_drives_quiet_hours_clock(self, in_app_store):
        """Test the orchestrator checks quiet hours in the configured offset."""
        config = NotificationServiceConfig(service=ServiceConfiguration(utc_offset_minutes=120))
        orchestrator = create_notification_orchestrator(config, in_app_store=in_app_store)
        assert orchestrator._clock().utcoffset() == timedelta(hours=2)

    def test_disabled_channels_not_registered(self, in_app_store):
        """Test disabled channels are left out."""
        config = NotificationServiceConfig(
            email=EmailChannelConfig(enabled=False),
            push=PushChannelConfig(enabled=False),
        )
        orchestrator = create_notification_orchestrator(config, in_app_store=in_app_store)
        assert orchestrator.get_available_channels() == [NotificationChannel.IN_APP]

    @pytest.mark.asyncio
    async def test_factory_orchestrator_delivers(self, config, in_app_store):
        """Test the wired orchestrator writes in-app records."""
        orchestrator = create_notification_orchestrator(config, in_app_store=in_app_store)
        outcome = await orchestrator.notify(NotificationType.SALON_UPDATE, {"userId": "u1"},
                                            {"channels": ["in_app"]})
        assert outcome.status is NotificationStatus.DELIVERED
        assert in_app_store.records[0].title == "Salon Update"


class TestRuntime:
    """Tests for the async lifespan."""

    @pytest.mark.asyncio
    async def test_lifespan(self, config, in_app_store):
        """Test the runtime exposes the orchestrator and closes pooled clients."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        async with notification_runtime(config, in_app_store=in_app_store, http_client=client) as orchestrator:
            assert get_notification_orchestrator() is orchestrator

        assert client.is_closed
        with pytest.raises(RuntimeError):
            get_notification_orchestrator()

    def test_configure_logging(self, config):
        """Test logging configuration installs the processor chain."""
        configure_logging(config)
        assert structlog.is_configured()
