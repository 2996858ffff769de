"""
Pytest configuration and fixtures for notification tests.
"""
from __future__ import annotations

import pytest

from uruti_notifications.domain.channels import (
    ChannelRegistry,
    EmailChannel,
    EmailConfig,
    InAppChannel,
    PushChannel,
    PushConfig,
)
from uruti_notifications.domain.policy import DeliveryPolicy
from uruti_notifications.domain.service import NotificationOrchestrator
from uruti_notifications.domain.templates import TemplateCatalog, TemplateEngine
from uruti_notifications.infrastructure.memory import (
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    InMemoryPushTokenRegistry,
    InMemoryUserDirectory,
)

EXPO_TOKEN = "ExponentPushToken[abc123]"


class ScriptedTransport:
    """Email transport that replays a script of message ids and exceptions."""

    def __init__(self, *outcomes: str | Exception) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[object, str]] = []

    async def send_message(self, message, recipient: str) -> str:
        self.calls.append((message, recipient))
        outcome = self._outcomes[min(len(self.calls), len(self._outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    """Awaitable sleep stand-in that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(scope="session")
def template_catalog():
    """Build the template catalog once per session."""
    return TemplateCatalog(year=2024)


@pytest.fixture
def template_engine(template_catalog):
    """Create a template engine over the shared catalog."""
    return TemplateEngine(template_catalog)


@pytest.fixture
def email_config():
    """Create a usable email configuration."""
    return EmailConfig(
        smtp_host="smtp.test.com",
        smtp_port=587,
        smtp_username="test",
        smtp_password="secret",
        from_email="noreply@uruti.test",
    )


@pytest.fixture
def unconfigured_email_config():
    """Create an email configuration without credentials."""
    return EmailConfig()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def in_app_store():
    return InMemoryNotificationStore()


@pytest.fixture
def push_tokens():
    return InMemoryPushTokenRegistry()


@pytest.fixture
def preference_store():
    return InMemoryPreferenceStore()


@pytest.fixture
def user_directory():
    return InMemoryUserDirectory()


@pytest.fixture
def policy():
    return DeliveryPolicy(frontend_url="https://app.uruti.test")


def build_orchestrator(
    engine: TemplateEngine,
    policy: DeliveryPolicy,
    *senders,
    user_directory=None,
    preferences=None,
    clock=None,
) -> NotificationOrchestrator:
    registry = ChannelRegistry()
    for sender in senders:
        registry.register_channel(sender)
    return NotificationOrchestrator(
        engine=engine,
        policy=policy,
        channels=registry,
        user_directory=user_directory,
        preferences=preferences,
        clock=clock,
    )


@pytest.fixture
def in_app_channel(in_app_store):
    return InAppChannel(in_app_store)


@pytest.fixture
def push_channel(push_tokens):
    return PushChannel(PushConfig(), push_tokens)


@pytest.fixture
def unconfigured_email_channel(unconfigured_email_config, sleep_recorder):
    return EmailChannel(unconfigured_email_config, transport=ScriptedTransport("unused"), sleep=sleep_recorder)
