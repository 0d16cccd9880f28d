"""
Tests for SMS delivery and message templates
"""

from datetime import date, time
import httpx
import pytest

from detailbook.core.config import Settings
from detailbook.services.notifications import (
    DeliveryStatus, LoggingNotificationProvider, NotificationProvider, TwilioSMSProvider,
    booking_invite_message, build_notification_provider,
    cancellation_message, confirmation_message, format_date, format_time, to_e164
)


def make_provider(handler) -> TwilioSMSProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TwilioSMSProvider(
        account_sid="AC123",
        auth_token="secret",
        from_number="+15550001111",
        api_base="https://api.twilio.test/2010-04-01",
        client=client,
    )


def test_successful_send_returns_sid():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = request.content.decode()
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    result = make_provider(handler).send("(555) 123-4567", "Hello")

    assert result.status == DeliveryStatus.SENT
    assert result.sent
    assert result.message_id == "SM42"
    assert captured["url"] == "https://api.twilio.test/2010-04-01/Accounts/AC123/Messages.json"
    assert "To=%2B15551234567" in captured["body"]
    assert captured["auth"].startswith("Basic ")


def test_api_error_is_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

    result = make_provider(handler).send("555-123-4567", "Hello")

    assert result.status == DeliveryStatus.FAILED
    assert result.error == "[21211] Invalid 'To' Phone Number"


def test_transport_error_is_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = make_provider(handler).send("555-123-4567", "Hello")

    assert result.status == DeliveryStatus.FAILED
    assert "connection refused" in result.error


def test_short_number_not_sent():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    result = make_provider(handler).send("555-0100", "Hello")

    assert result.status == DeliveryStatus.FAILED
    assert calls == []


def test_to_e164():
    assert to_e164("(555) 123-4567") == "+15551234567"
    assert to_e164("+44 20 7946 0958") == "+442079460958"
    assert to_e164("555-0100") is None


def test_logging_provider_skips():
    result = LoggingNotificationProvider().send("555-0100", "Hello")

    assert result.status == DeliveryStatus.SKIPPED
    assert result.error == "SMS provider not configured"


def test_provider_selection():
    assert isinstance(build_notification_provider(Settings(TWILIO_ACCOUNT_SID=None)), LoggingNotificationProvider)

    configured = Settings(
        TWILIO_ACCOUNT_SID="AC123", TWILIO_AUTH_TOKEN="secret", TWILIO_PHONE_NUMBER="+15550001111"
    )
    assert isinstance(build_notification_provider(configured), TwilioSMSProvider)


def test_date_and_time_formatting():
    assert format_date(date(2025, 3, 10)) == "Monday, March 10, 2025"
    assert format_time(time(14, 0)) == "2:00 PM"
    assert format_time(time(0, 5)) == "12:05 AM"
    assert format_time(time(12, 30)) == "12:30 PM"


def test_templates_mention_details():
    confirmation = confirmation_message("Jane", "Full Detail", date(2025, 3, 10), time(14, 0), "Shine")
    cancellation = cancellation_message(
        "Jane", "Full Detail", date(2025, 3, 10), time(14, 0), "Shine", "Van broke down."
    )

    assert confirmation.startswith("Hi Jane!")
    assert "Full Detail appointment with Shine is confirmed" in confirmation
    assert "has been cancelled. Van broke down." in cancellation


def test_provider_interface_requires_send():
    class Silent(NotificationProvider):
        pass

    with pytest.raises(TypeError):
        Silent()


def test_booking_invite_message():
    body = booking_invite_message("Ana", "Shine Detailing", "https://book.example/detailer-42")

    assert body.startswith("Hi Ana! Shine Detailing")
    assert body.endswith("https://book.example/detailer-42")
