"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.occurred_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__
        }


class AppointmentEvent(DomainEvent):
    """Base class for events about a single appointment"""

    def __init__(
        self,
        appointment_id: uuid.UUID,
        tenant_id: uuid.UUID,
        status: str,
        reason: Optional[str] = None,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.appointment_id = appointment_id
        self.tenant_id = tenant_id
        self.status = status
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "appointment_id": str(self.appointment_id),
            "tenant_id": str(self.tenant_id),
            "status": self.status,
            "reason": self.reason
        })
        return data


class AppointmentBooked(AppointmentEvent):
    """Event fired when an appointment is created"""


class AppointmentConfirmed(AppointmentEvent):
    """Event fired when an operator confirms an appointment"""


class AppointmentRescheduleRequested(AppointmentEvent):
    """Event fired when an appointment goes back to pending for rebooking"""


class AppointmentCancelled(AppointmentEvent):
    """Event fired when an appointment is cancelled"""


class AppointmentStarted(AppointmentEvent):
    """Event fired when work on an appointment starts"""


class AppointmentCompleted(AppointmentEvent):
    """Event fired when an appointment is completed"""


class AppointmentNoShow(AppointmentEvent):
    """Event fired when an appointment is marked as no-show"""


class AppointmentPurged(AppointmentEvent):
    """Event fired when a cancelled appointment is permanently deleted"""


class ReminderSent(AppointmentEvent):
    """Event fired when a reminder was delivered to the provider"""


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to event type: {event_type}")

    def publish(self, event: DomainEvent):
        """Publish an event to all subscribers"""
        event_type = event.__class__.__name__
        handlers = self._subscribers.get(event_type, [])

        if not handlers:
            logger.debug(f"No subscribers for event type: {event_type}")
            return

        logger.info(f"Publishing event {event_type}: {event.event_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type}: {e}", exc_info=True)
