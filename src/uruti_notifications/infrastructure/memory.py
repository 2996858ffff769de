"""
Uruti Notifications - In-Memory Collaborators.

Process-local implementations of the collaborator ports for development
and tests. Each store guards its state with an ``asyncio.Lock``.
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

import structlog

from ..domain.entities import (
    InAppPage,
    InAppRecord,
    InAppRecordCreate,
    InAppRecordFilter,
    NotificationChannel,
    NotificationPreference,
    Pagination,
    UserProfile,
)

logger = structlog.get_logger(__name__)


class InMemoryUserDirectory:
    """User directory backed by a dict."""

    def __init__(self, users: Iterable[UserProfile] = ()) -> None:
        self._users = {u.id: u for u in users}

    def add_user(self, user: UserProfile) -> None:
        self._users[user.id] = user

    async def find_user(self, user_id: str) -> UserProfile | None:
        return self._users.get(user_id)


class InMemoryPushTokenRegistry:
    """Device token registry; one token per user."""

    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}

    async def register_push_token(self, user_id: str, token: str) -> None:
        self._tokens[user_id] = token
        logger.info("push_token_registered", user_id=user_id)

    async def remove_push_token(self, user_id: str) -> bool:
        return self._tokens.pop(user_id, None) is not None

    async def get_user_push_token(self, user_id: str) -> str | None:
        return self._tokens.get(user_id)


class InMemoryNotificationStore:
    """Append-only in-app notification log with a read flag."""

    def __init__(self) -> None:
        self._records: list[InAppRecord] = []
        self._lock = asyncio.Lock()

    @property
    def records(self) -> list[InAppRecord]:
        return list(self._records)

    async def create_record(self, user_id: str | None, payload: InAppRecordCreate) -> InAppRecord:
        record = InAppRecord(user_id=user_id, **payload.model_dump())
        async with self._lock:
            self._records.append(record)
        logger.debug("in_app_record_created", record_id=str(record.id), user_id=user_id)
        return record

    def _owned_by(self, record: InAppRecord, owner_id: str) -> bool:
        return record.user_id == owner_id or record.customer_id == owner_id

    async def list_for_user(
        self,
        user_id: str,
        record_filter: InAppRecordFilter | None = None,
        pagination: Pagination | None = None,
    ) -> InAppPage:
        record_filter = record_filter or InAppRecordFilter()
        pagination = pagination or Pagination()
        matching = [
            r for r in self._records
            if self._owned_by(r, user_id)
            and not (record_filter.unread_only and r.is_read)
            and (record_filter.notification_type is None
                 or r.notification_type == record_filter.notification_type)
        ]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        window = matching[pagination.offset:pagination.offset + pagination.limit]
        return InAppPage(data=window, total=len(matching))

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for r in self._records if self._owned_by(r, user_id) and not r.is_read)

    async def mark_as_read(self, record_id: UUID, user_id: str) -> InAppRecord | None:
        """Mark one record read; returns None when it does not belong to the user."""
        async with self._lock:
            for index, record in enumerate(self._records):
                if record.id == record_id and self._owned_by(record, user_id):
                    if not record.is_read:
                        record = record.model_copy(update={"is_read": True,
                                                           "read_at": datetime.now(timezone.utc)})
                        self._records[index] = record
                    return record
        return None

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread record of the user read; returns how many changed."""
        now = datetime.now(timezone.utc)
        changed = 0
        async with self._lock:
            for index, record in enumerate(self._records):
                if self._owned_by(record, user_id) and not record.is_read:
                    self._records[index] = record.model_copy(update={"is_read": True, "read_at": now})
                    changed += 1
        return changed


class InMemoryPreferenceStore:
    """Notification preferences keyed by (owner, type, channel)."""

    def __init__(self) -> None:
        self._preferences: dict[tuple[str, str, NotificationChannel], NotificationPreference] = {}

    async def set_preference(self, owner_id: str, preference: NotificationPreference) -> None:
        key = (owner_id, preference.notification_type, preference.channel)
        self._preferences[key] = preference

    async def get_preference(
        self,
        owner_id: str,
        notification_type: str,
        channel: NotificationChannel,
    ) -> NotificationPreference | None:
        return self._preferences.get((owner_id, notification_type, channel))
