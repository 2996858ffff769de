"""
Uruti Notifications - Configuration.

Centralized configuration management for the notification subsystem.
Supports environment-based configuration with validation.

Architecture Layer: Infrastructure
Principles: 12-Factor App, Configuration Externalization, Type Safety
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

from .domain.channels import EXPO_PUSH_URL, EmailConfig, EmailDeliveryMode, PushConfig

logger = structlog.get_logger(__name__)


class Environment(str, Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ServiceConfiguration(BaseSettings):
    """Core service configuration."""
    name: str = Field(default="uruti-notifications")
    version: str = Field(default="1.0.0")
    env: Environment = Field(default=Environment.DEVELOPMENT)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    debug: bool = Field(default=False)
    utc_offset_minutes: int | None = Field(
        default=None, ge=-720, le=840,
        description="Offset used for quiet hours; unset means host local time",
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATION_SERVICE_",
        env_file=".env",
        extra="ignore",
    )


class EmailChannelConfig(BaseSettings):
    """SMTP email channel configuration."""
    enabled: bool = Field(default=True)
    host: str = Field(default="localhost")
    port: int = Field(default=587, ge=1, le=65535)
    secure: bool = Field(default=False)
    username: str = Field(default="")
    password: str = Field(default="")
    from_email: str = Field(default="noreply@uruti.rw")
    from_name: str = Field(default="Uruti Saluni")
    delivery_mode: EmailDeliveryMode = Field(default=EmailDeliveryMode.LIVE)
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    max_connections: int = Field(default=5, ge=1, le=100)

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("from_email", mode="before")
    @classmethod
    def validate_from_email(cls, v: str) -> str:
        """Validate from email format."""
        if v and "@" not in v:
            raise ValueError("Invalid email format")
        return v.strip().lower() if v else v

    @property
    def is_configured(self) -> bool:
        """Usable only with credentials and a non-default host."""
        return self.to_channel_config().is_configured

    def to_channel_config(self) -> EmailConfig:
        return EmailConfig(
            enabled=self.enabled,
            smtp_host=self.host,
            smtp_port=self.port,
            smtp_username=self.username,
            smtp_password=self.password,
            use_tls=self.secure,
            from_email=self.from_email,
            from_name=self.from_name,
            delivery_mode=self.delivery_mode,
            max_attempts=self.max_attempts,
            backoff_base_seconds=self.backoff_base_seconds,
            backoff_multiplier=self.backoff_multiplier,
            timeout_seconds=self.timeout_seconds,
            max_connections=self.max_connections,
        )


class PushChannelConfig(BaseSettings):
    """Expo push notification configuration."""
    enabled: bool = Field(default=True)
    expo_push_url: str = Field(default=EXPO_PUSH_URL)
    access_token: str = Field(default="")
    timeout_seconds: float = Field(default=10.0, ge=1.0, le=300.0)

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        env_file=".env",
        extra="ignore",
    )

    def to_channel_config(self) -> PushConfig:
        return PushConfig(
            enabled=self.enabled,
            expo_push_url=self.expo_push_url,
            access_token=self.access_token,
            timeout_seconds=self.timeout_seconds,
        )


class LinksConfig(BaseSettings):
    """Frontend links and branding used in notification content."""
    frontend_url: str = Field(default="http://localhost:3000")
    brand_name: str = Field(default="Uruti Saluni")
    brand_tagline: str = Field(default="Premium Salon & Spa")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("frontend_url must be an http(s) URL")
        return v.rstrip("/")


class ObservabilityConfig(BaseSettings):
    """Observability configuration."""
    log_format: Literal["json", "console"] = Field(default="json")

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_",
        env_file=".env",
        extra="ignore",
    )


class NotificationServiceConfig(BaseSettings):
    """Aggregate notification subsystem configuration."""
    service: ServiceConfiguration = Field(default_factory=ServiceConfiguration)
    email: EmailChannelConfig = Field(default_factory=EmailChannelConfig)
    push: PushChannelConfig = Field(default_factory=PushChannelConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @staticmethod
    def load() -> NotificationServiceConfig:
        """Load configuration from environment."""
        config = NotificationServiceConfig()
        logger.info(
            "notification_config_loaded",
            service=config.service.name,
            env=config.service.env.value,
            email_enabled=config.email.enabled,
            email_configured=config.email.is_configured,
            email_mode=config.email.delivery_mode.value,
            push_enabled=config.push.enabled,
        )
        return config

    def get_enabled_channels(self) -> list[str]:
        """Get list of enabled channels. In-app is always on."""
        channels = ["in_app"]
        if self.email.enabled:
            channels.append("email")
        if self.push.enabled:
            channels.append("push")
        return channels

    def is_production(self) -> bool:
        return self.service.env == Environment.PRODUCTION

    def quiet_hours_clock(self) -> Callable[[], datetime] | None:
        """Clock for quiet-hour checks; None keeps the orchestrator's local-time default."""
        offset = self.service.utc_offset_minutes
        if offset is None:
            return None
        zone = timezone(timedelta(minutes=offset))
        return lambda: datetime.now(zone)


_config: NotificationServiceConfig | None = None


def get_config() -> NotificationServiceConfig:
    """Get singleton configuration instance."""
    global _config
    if _config is None:
        _config = NotificationServiceConfig.load()
    return _config


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    global _config
    _config = None
