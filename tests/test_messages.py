"""
Unit tests for the message catalog.
"""
import pytest

from uruti_notifications.domain.entities import NotificationType
from uruti_notifications.domain.messages import (
    GENERIC_MESSAGE,
    MESSAGE_CATALOG,
    format_money,
    message_for,
)


class TestFormatMoney:
    """Tests for currency formatting."""

    @pytest.mark.parametrize("value,expected", [
        (12500, "RWF 12,500"),
        ("18000", "RWF 18,000"),
        (1234.5, "RWF 1,234.50"),
        (None, ""),
        ("", ""),
        ("n/a", "n/a"),
    ])
    def test_format(self, value, expected):
        """Test numeric and non-numeric amounts."""
        assert format_money(value) == expected


class TestMessageCatalog:
    """Tests for per-type messages."""

    def test_every_type_has_a_message(self):
        """Test the catalog covers every notification type."""
        assert set(MESSAGE_CATALOG) == set(NotificationType)

    def test_unknown_type_uses_generic(self):
        """Test unknown types fall back to the generic message."""
        assert message_for(None) is GENERIC_MESSAGE

    def test_defaults_fill_blank_values(self):
        """Test template defaults replace missing and empty values only."""
        message = message_for(NotificationType.APPOINTMENT_BOOKED)
        values = message.template_values({"customerName": "", "salonName": "Glow Salon"})
        assert values["customerName"] == "Customer"
        assert values["salonName"] == "Glow Salon"
        assert values["serviceName"] == "Service"

    def test_text_values_format_money(self):
        """Test money fields are formatted without touching the input."""
        context = {"saleAmount": 5000}
        values = message_for(NotificationType.SALE_COMPLETED).text_values(context)
        assert values["saleAmount"] == "RWF 5,000"
        assert context == {"saleAmount": 5000}

    def test_low_stock_wording(self, template_engine):
        """Test product name fallback in the stock message."""
        message = message_for(NotificationType.LOW_STOCK_ALERT)
        assert template_engine.render_string(message.message, {}) == 'Product "Unknown" is running low in stock.'
        assert template_engine.render_string(message.message, {"productName": "Argan Oil"}) == (
            'Product "Argan Oil" is running low in stock.'
        )
