"""
Appointment model with status state machine
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Index
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from enum import Enum
import uuid

from detailbook.core.exceptions import InvalidTransitionError


class AppointmentStatus(str, Enum):
    """Status of an appointment"""
    PENDING = "pending"             # Booked, awaiting operator confirmation
    CONFIRMED = "confirmed"         # Accepted by the operator
    IN_PROGRESS = "in_progress"     # Work has started
    COMPLETED = "completed"         # Work finished
    CANCELLED = "cancelled"         # Cancelled with a reason
    NO_SHOW = "no_show"             # Customer did not show up (operator-set)


class PaymentStatus(str, Enum):
    """Payment state, driven by the external payment processor"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# Statuses that hold their slot
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
)

TERMINAL_STATUSES = (
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
)


class Appointment(SQLModel, table=True):
    """Appointment of a customer with a tenant"""

    __tablename__ = "appointments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )
    customer_id: uuid.UUID = Field(foreign_key="customers.id", index=True)

    # Slot
    scheduled_date: date = Field(index=True)
    scheduled_time: time
    slot_time: time = Field(description="scheduled_time truncated to the minute")

    # Service snapshot (not a live reference)
    service_name: str = Field(max_length=200)
    amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    status: AppointmentStatus = Field(default=AppointmentStatus.PENDING, index=True)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    notes: Optional[str] = Field(default=None, max_length=2000)

    # Reminder
    reminder_sent: bool = Field(default=False)
    reminder_sent_at: Optional[datetime] = None

    # Transition details
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = Field(default=None, max_length=1000)
    reschedule_reason: Optional[str] = Field(default=None, max_length=1000)
    reschedule_requested_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    # State machine methods
    def _can(self, allowed: tuple, action: str) -> tuple[bool, str]:
        if self.status in allowed:
            return True, f"Can {action}"
        if self.status == AppointmentStatus.CANCELLED:
            return False, f"Cannot {action} a cancelled appointment"
        if self.is_terminal():
            return False, f"Cannot {action}: appointment is {self.status.value}"
        return False, f"Cannot {action} an appointment in {self.status.value} status"

    def can_confirm(self) -> tuple[bool, str]:
        if self.status == AppointmentStatus.CONFIRMED:
            return False, "Appointment is already confirmed"
        return self._can((AppointmentStatus.PENDING,), "confirm")

    def can_reschedule(self) -> tuple[bool, str]:
        return self._can((AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED), "reschedule")

    def can_cancel(self) -> tuple[bool, str]:
        if self.status == AppointmentStatus.CANCELLED:
            return False, "Appointment is already cancelled"
        return self._can(ACTIVE_STATUSES, "cancel")

    def can_start(self) -> tuple[bool, str]:
        return self._can((AppointmentStatus.CONFIRMED,), "start")

    def can_complete(self) -> tuple[bool, str]:
        return self._can((AppointmentStatus.IN_PROGRESS,), "complete")

    def can_mark_no_show(self) -> tuple[bool, str]:
        return self._can((AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED), "mark as no-show")

    def can_send_reminder(self) -> tuple[bool, str]:
        if self.status == AppointmentStatus.CANCELLED:
            return False, "Cannot send reminder for cancelled appointment"
        return True, "Can send reminder"

    def can_purge(self) -> tuple[bool, str]:
        if self.status != AppointmentStatus.CANCELLED:
            return False, "Only cancelled appointments can be permanently deleted"
        return True, "Can purge"

    @staticmethod
    def ensure(check: tuple[bool, str]) -> None:
        allowed, reason = check
        if not allowed:
            raise InvalidTransitionError(reason)

    def transition_to_confirmed(self) -> None:
        """Operator accepts the booking"""
        self.ensure(self.can_confirm())

        self.status = AppointmentStatus.CONFIRMED
        self.confirmed_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

    def transition_to_rescheduled(
        self,
        reason: str,
        new_date: Optional[date] = None,
        new_time: Optional[time] = None
    ) -> None:
        """Back to pending; optionally moved to a new slot"""
        self.ensure(self.can_reschedule())

        if new_date is not None:
            self.scheduled_date = new_date
        if new_time is not None:
            self.scheduled_time = new_time
            self.slot_time = new_time.replace(second=0, microsecond=0)

        self.status = AppointmentStatus.PENDING
        self.reschedule_reason = reason
        self.reschedule_requested_at = datetime.utcnow()
        self.confirmed_at = None
        self.updated_at = datetime.utcnow()

    def transition_to_cancelled(self, reason: str) -> None:
        """Cancel the appointment, releasing its slot"""
        self.ensure(self.can_cancel())

        self.status = AppointmentStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

    def transition_to_in_progress(self) -> None:
        self.ensure(self.can_start())

        self.status = AppointmentStatus.IN_PROGRESS
        self.started_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

    def transition_to_completed(self) -> None:
        self.ensure(self.can_complete())

        self.status = AppointmentStatus.COMPLETED
        self.completed_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

    def transition_to_no_show(self) -> None:
        self.ensure(self.can_mark_no_show())

        self.status = AppointmentStatus.NO_SHOW
        self.updated_at = datetime.utcnow()

    def mark_reminder_sent(self) -> None:
        self.reminder_sent = True
        self.reminder_sent_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()


# At most one slot-holding appointment per tenant, date and minute
Index(
    "uq_appointments_active_slot",
    Appointment.__table__.c.tenant_id,
    Appointment.__table__.c.scheduled_date,
    Appointment.__table__.c.slot_time,
    unique=True,
    sqlite_where=Appointment.__table__.c.status.in_(ACTIVE_STATUSES),
    postgresql_where=Appointment.__table__.c.status.in_(ACTIVE_STATUSES),
)
