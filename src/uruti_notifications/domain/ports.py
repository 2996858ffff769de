"""
Uruti Notifications - Collaborator Ports.

Narrow async interfaces to the systems the notification subsystem consumes
but does not own: user directory, push-token registry, in-app store and
notification preferences.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from .entities import (
    InAppPage,
    InAppRecord,
    InAppRecordCreate,
    InAppRecordFilter,
    NotificationChannel,
    NotificationPreference,
    Pagination,
    UserProfile,
)


@runtime_checkable
class UserDirectory(Protocol):
    """Resolves recipient addresses and channel preferences."""

    async def find_user(self, user_id: str) -> UserProfile | None:
        ...


@runtime_checkable
class PushTokenRegistry(Protocol):
    """Device token store. A missing token is a normal outcome."""

    async def get_user_push_token(self, user_id: str) -> str | None:
        ...


@runtime_checkable
class InAppNotificationStore(Protocol):
    """Append-only log of in-app notifications with a read flag."""

    async def create_record(self, user_id: str | None, payload: InAppRecordCreate) -> InAppRecord:
        ...

    async def list_for_user(
        self,
        user_id: str,
        record_filter: InAppRecordFilter | None = None,
        pagination: Pagination | None = None,
    ) -> InAppPage:
        ...

    async def unread_count(self, user_id: str) -> int:
        ...


@runtime_checkable
class PreferenceStore(Protocol):
    """Per-user, per-type, per-channel notification settings."""

    async def get_preference(
        self,
        owner_id: str,
        notification_type: str,
        channel: NotificationChannel,
    ) -> NotificationPreference | None:
        ...
