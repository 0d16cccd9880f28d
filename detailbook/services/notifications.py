"""
Customer notifications

The engine only triggers notifications; delivery is the provider's job.
Providers never raise: transport and API failures come back as a
``failed`` result so a state change is never blocked by messaging.
"""

from abc import ABC, abstractmethod
from datetime import date, time
from enum import Enum
from typing import Optional
import re

import httpx
from pydantic import BaseModel
import structlog

from detailbook.core.config import Settings

logger = structlog.get_logger(__name__)


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class NotificationResult(BaseModel):
    """Outcome of a single send attempt"""
    status: DeliveryStatus
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == DeliveryStatus.SENT


class NotificationProvider(ABC):
    """Interface of an outbound message channel"""

    @abstractmethod
    def send(self, recipient: str, message: str) -> NotificationResult:
        """Deliver ``message`` to ``recipient``; failures come back as a result"""


def to_e164(phone: str) -> Optional[str]:
    """Format a phone number for the SMS API, None when it cannot be dialed"""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 10:
        return None
    return f"+1{digits}" if len(digits) == 10 else f"+{digits}"


class TwilioSMSProvider(NotificationProvider):
    """Sends SMS through the Twilio Messages REST API"""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.client = client

    def send(self, recipient: str, message: str) -> NotificationResult:
        to_phone = to_e164(recipient)
        if to_phone is None:
            logger.warning(f"Cannot send SMS to invalid phone number: {recipient}")
            return NotificationResult(status=DeliveryStatus.FAILED, error="Invalid phone number")

        url = f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"
        data = {"To": to_phone, "From": self.from_number, "Body": message}

        try:
            if self.client is not None:
                response = self.client.post(
                    url, auth=(self.account_sid, self.auth_token), data=data, timeout=self.timeout
                )
            else:
                with httpx.Client() as client:
                    response = client.post(
                        url, auth=(self.account_sid, self.auth_token), data=data, timeout=self.timeout
                    )
        except httpx.HTTPError as e:
            logger.error(f"Twilio request failed: {e}")
            return NotificationResult(status=DeliveryStatus.FAILED, error=str(e) or "SMS request failed")

        if response.status_code in (200, 201):
            sid = response.json().get("sid")
            logger.info(f"SMS sent to {to_phone} (SID: {sid})")
            return NotificationResult(status=DeliveryStatus.SENT, message_id=sid)

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message") or f"Twilio returned HTTP {response.status_code}"
        error_code = error_data.get("code")
        logger.error(f"Twilio API error [{error_code}]: {error_message}")
        return NotificationResult(
            status=DeliveryStatus.FAILED,
            error=f"[{error_code}] {error_message}" if error_code else error_message
        )


class LoggingNotificationProvider(NotificationProvider):
    """Used when no SMS credentials are configured"""

    def send(self, recipient: str, message: str) -> NotificationResult:
        logger.info(f"[DEMO MODE] SMS would be sent to {recipient}: {message}")
        return NotificationResult(
            status=DeliveryStatus.SKIPPED,
            error="SMS provider not configured"
        )


def build_notification_provider(settings: Settings) -> NotificationProvider:
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER:
        return TwilioSMSProvider(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            api_base=settings.TWILIO_API_BASE,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    logger.warning("Twilio credentials not configured, notifications will be logged only")
    return LoggingNotificationProvider()


# Message templates

def format_date(value: date) -> str:
    """Monday, March 10, 2025"""
    return f"{value:%A, %B} {value.day}, {value.year}"


def format_time(value: time) -> str:
    """2:00 PM"""
    hour12 = value.hour % 12 or 12
    ampm = "PM" if value.hour >= 12 else "AM"
    return f"{hour12}:{value.minute:02d} {ampm}"


def confirmation_message(customer_name: str, service: str, day: date, at: time, business: str) -> str:
    return (
        f"Hi {customer_name}! Your {service} appointment with {business} is confirmed for "
        f"{format_date(day)} at {format_time(at)}. We'll send a reminder before your appointment. Thanks!"
    )


def reminder_message(customer_name: str, service: str, day: date, at: time, business: str) -> str:
    return (
        f"Hi {customer_name}! This is a reminder that your {service} appointment with {business} "
        f"is scheduled for {format_date(day)} at {format_time(at)}. We'll see you then! Reply STOP to opt out."
    )


def reschedule_message(
    customer_name: str, service: str, day: date, at: time, business: str, reason: str
) -> str:
    return (
        f"Hi {customer_name}! Your {service} appointment with {business} scheduled for "
        f"{format_date(day)} at {format_time(at)} needs to be rescheduled. {reason} "
        f"Please contact us to choose a new date and time."
    )


def moved_message(customer_name: str, service: str, day: date, at: time, business: str, reason: str) -> str:
    return (
        f"Hi {customer_name}! Your {service} appointment with {business} has been moved to "
        f"{format_date(day)} at {format_time(at)}. {reason} We'll confirm it shortly."
    )


def cancellation_message(
    customer_name: str, service: str, day: date, at: time, business: str, reason: str
) -> str:
    return (
        f"Hi {customer_name}! Your {service} appointment with {business} on {format_date(day)} "
        f"at {format_time(at)} has been cancelled. {reason} We apologize for any inconvenience. "
        f"Please contact us if you'd like to reschedule."
    )


def booking_invite_message(customer_name: str, business: str, booking_link: str) -> str:
    return (
        f"Hi {customer_name}! {business} would love to see you again. "
        f"Book your next appointment here: {booking_link}"
    )
