"""
Unit tests for the in-memory collaborators.
"""
from datetime import datetime, timedelta, timezone

import pytest

from uruti_notifications.domain.entities import (
    InAppRecordCreate,
    InAppRecordFilter,
    NotificationChannel,
    NotificationPreference,
    Pagination,
    UserProfile,
)
from uruti_notifications.domain.ports import (
    InAppNotificationStore,
    PreferenceStore,
    PushTokenRegistry,
    UserDirectory,
)
from uruti_notifications.infrastructure.memory import (
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    InMemoryPushTokenRegistry,
    InMemoryUserDirectory,
)


def _payload(title: str, notification_type: str = "salon_update", customer_id=None) -> InAppRecordCreate:
    return InAppRecordCreate(notification_type=notification_type, title=title, body=f"{title} body",
                             customer_id=customer_id)


class TestPortConformance:
    """Tests that the in-memory stores satisfy the ports."""

    def test_protocols(self):
        """Test runtime protocol checks."""
        assert isinstance(InMemoryUserDirectory(), UserDirectory)
        assert isinstance(InMemoryPushTokenRegistry(), PushTokenRegistry)
        assert isinstance(InMemoryNotificationStore(), InAppNotificationStore)
        assert isinstance(InMemoryPreferenceStore(), PreferenceStore)


class TestInMemoryNotificationStore:
    """Tests for the in-app record store."""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, in_app_store):
        """Test records are listed newest first with a total."""
        first = await in_app_store.create_record("u1", _payload("first"))
        second = await in_app_store.create_record("u1", _payload("second"))
        first_index = in_app_store.records.index(first)
        in_app_store._records[first_index] = first.model_copy(
            update={"created_at": datetime.now(timezone.utc) - timedelta(hours=1)})
        await in_app_store.create_record("u2", _payload("other"))

        page = await in_app_store.list_for_user("u1")

        assert page.total == 2
        assert [r.title for r in page.data] == ["second", "first"]
        assert page.data[0].id == second.id

    @pytest.mark.asyncio
    async def test_pagination(self, in_app_store):
        """Test limit and offset window the results."""
        for n in range(5):
            await in_app_store.create_record("u1", _payload(f"n{n}"))
        page = await in_app_store.list_for_user("u1", pagination=Pagination(limit=2, offset=4))
        assert page.total == 5
        assert len(page.data) == 1

    @pytest.mark.asyncio
    async def test_filters(self, in_app_store):
        """Test unread and type filters."""
        record = await in_app_store.create_record("u1", _payload("a", "sale_completed"))
        await in_app_store.create_record("u1", _payload("b", "salon_update"))
        await in_app_store.mark_as_read(record.id, "u1")

        unread = await in_app_store.list_for_user("u1", InAppRecordFilter(unread_only=True))
        assert [r.title for r in unread.data] == ["b"]
        sales = await in_app_store.list_for_user("u1", InAppRecordFilter(notification_type="sale_completed"))
        assert [r.title for r in sales.data] == ["a"]

    @pytest.mark.asyncio
    async def test_customer_owned_records(self, in_app_store):
        """Test records addressed to a customer are listed for that customer."""
        await in_app_store.create_record(None, _payload("receipt", customer_id="c1"))
        assert (await in_app_store.list_for_user("c1")).total == 1
        assert await in_app_store.unread_count("c1") == 1

    @pytest.mark.asyncio
    async def test_mark_as_read(self, in_app_store):
        """Test marking one record read updates the unread count."""
        record = await in_app_store.create_record("u1", _payload("a"))
        await in_app_store.create_record("u1", _payload("b"))
        assert await in_app_store.unread_count("u1") == 2

        updated = await in_app_store.mark_as_read(record.id, "u1")

        assert updated.is_read is True
        assert updated.read_at is not None
        assert await in_app_store.unread_count("u1") == 1

    @pytest.mark.asyncio
    async def test_mark_as_read_requires_owner(self, in_app_store):
        """Test another user's record cannot be marked read."""
        record = await in_app_store.create_record("u1", _payload("a"))
        assert await in_app_store.mark_as_read(record.id, "u2") is None
        assert await in_app_store.unread_count("u1") == 1

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, in_app_store):
        """Test marking everything read returns the number changed."""
        for title in ("a", "b", "c"):
            await in_app_store.create_record("u1", _payload(title))
        assert await in_app_store.mark_all_as_read("u1") == 3
        assert await in_app_store.mark_all_as_read("u1") == 0
        assert await in_app_store.unread_count("u1") == 0


class TestOtherStores:
    """Tests for the directory, token registry and preference store."""

    @pytest.mark.asyncio
    async def test_user_directory(self):
        """Test user lookup."""
        directory = InMemoryUserDirectory([UserProfile(id="u1", email="a@b.rw")])
        assert (await directory.find_user("u1")).email == "a@b.rw"
        assert await directory.find_user("missing") is None

    @pytest.mark.asyncio
    async def test_push_tokens(self, push_tokens):
        """Test token registration and removal."""
        await push_tokens.register_push_token("u1", "ExponentPushToken[x]")
        assert await push_tokens.get_user_push_token("u1") == "ExponentPushToken[x]"
        assert await push_tokens.remove_push_token("u1") is True
        assert await push_tokens.remove_push_token("u1") is False
        assert await push_tokens.get_user_push_token("u1") is None

    @pytest.mark.asyncio
    async def test_preferences(self, preference_store):
        """Test preferences are keyed by owner, type and channel."""
        pref = NotificationPreference(notification_type="salon_update", channel=NotificationChannel.PUSH,
                                      enabled=False)
        await preference_store.set_preference("u1", pref)
        assert await preference_store.get_preference("u1", "salon_update", NotificationChannel.PUSH) == pref
        assert await preference_store.get_preference("u1", "salon_update", NotificationChannel.EMAIL) is None
        assert await preference_store.get_preference("u2", "salon_update", NotificationChannel.PUSH) is None
