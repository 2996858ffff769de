"""
Unit tests for domain entities.
"""
import pytest
from pydantic import ValidationError

from uruti_notifications.domain.entities import (
    DeliveryOptions,
    NotificationChannel,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    Recipient,
    template_name_for,
)


class TestNotificationType:
    """Tests for tag normalisation."""

    @pytest.mark.parametrize("tag", [
        "APPOINTMENT_BOOKED",
        "appointment_booked",
        "appointment-booked",
        " Appointment Booked ",
        NotificationType.APPOINTMENT_BOOKED,
    ])
    def test_from_tag(self, tag):
        """Test tag spellings resolve to the same type."""
        assert NotificationType.from_tag(tag) is NotificationType.APPOINTMENT_BOOKED

    @pytest.mark.parametrize("tag", [None, "", "nope"])
    def test_unknown_tag(self, tag):
        """Test unknown tags resolve to None."""
        assert NotificationType.from_tag(tag) is None

    def test_template_name_for(self):
        """Test template names are lower snake case."""
        assert template_name_for("LOW-STOCK.ALERT") == "low_stock_alert"
        assert template_name_for(NotificationType.OUT_OF_STOCK) == "out_of_stock"


class TestRecipient:
    """Tests for Recipient."""

    def test_email_normalised(self):
        """Test addresses are trimmed and lower-cased."""
        assert Recipient(email="  Amina@Example.COM ").email == "amina@example.com"

    def test_blank_email_is_none(self):
        """Test blank addresses become None."""
        assert Recipient(email="   ").email is None

    def test_owner_id(self):
        """Test the user id wins over the customer id."""
        assert Recipient(user_id="u1", customer_id="c1").owner_id == "u1"
        assert Recipient(customer_id="c1").owner_id == "c1"
        assert Recipient().owner_id is None


class TestDeliveryOptions:
    """Tests for DeliveryOptions."""

    def test_channels_parsed(self):
        """Test channel names are parsed into the enum."""
        options = DeliveryOptions.model_validate({"channels": ["email", "in_app"]})
        assert options.channels == [NotificationChannel.EMAIL, NotificationChannel.IN_APP]

    def test_channel_tags_normalised(self):
        """Test upper-case and hyphenated channel tags are accepted."""
        options = DeliveryOptions.model_validate({"channels": ["IN_APP", "Push", "in-app"], "priority": "HIGH"})
        assert options.channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH, NotificationChannel.IN_APP]
        assert options.priority is NotificationPriority.HIGH

    def test_unknown_channel_rejected(self):
        """Test unknown channels fail validation."""
        with pytest.raises(ValidationError):
            DeliveryOptions.model_validate({"channels": ["sms"]})

    def test_frozen(self):
        """Test options are immutable."""
        options = DeliveryOptions()
        with pytest.raises(ValidationError):
            options.priority = "high"


class TestNotificationPreference:
    """Tests for NotificationPreference."""

    def test_quiet_hours(self):
        """Test quiet hours require both bounds."""
        pref = NotificationPreference(
            notification_type="salon_update", channel=NotificationChannel.PUSH,
            quiet_hours_start="22:00", quiet_hours_end="07:00",
        )
        assert pref.has_quiet_hours is True
        half = NotificationPreference(
            notification_type="salon_update", channel=NotificationChannel.PUSH, quiet_hours_start="22:00",
        )
        assert half.has_quiet_hours is False

    @pytest.mark.parametrize("value", ["24:00", "7:00", "22:60", "noon"])
    def test_invalid_quiet_hours(self, value):
        """Test malformed times are rejected."""
        with pytest.raises(ValidationError):
            NotificationPreference(
                notification_type="salon_update", channel=NotificationChannel.PUSH, quiet_hours_start=value,
            )
