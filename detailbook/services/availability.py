"""
Slot availability and reservation

A slot is a (date, minute) pair; seconds never distinguish two slots.
The application-level check gives a friendly error early, the partial
unique index on appointments is what actually prevents double-booking.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, NamedTuple, Optional, Union
import uuid
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from detailbook.core.config import Settings, get_settings
from detailbook.core.exceptions import BookingValidationError, SlotConflictError, StorageError
from detailbook.core.validators import parse_date, parse_time, truncate_to_minute
from detailbook.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from detailbook.models.tenant import Tenant

logger = structlog.get_logger(__name__)

SLOT_INDEX_NAME = "uq_appointments_active_slot"
SLOT_TAKEN = "Time slot is already booked"


class Slot(NamedTuple):
    date: date
    time: time

    def label(self) -> str:
        return self.time.strftime("%H:%M")


def is_slot_conflict(error: IntegrityError) -> bool:
    """Whether an integrity error came from the active-slot unique index"""
    message = str(error.orig) if error.orig is not None else str(error)
    return SLOT_INDEX_NAME in message or "appointments.slot_time" in message


def tenant_zone(tenant: Tenant) -> ZoneInfo:
    try:
        return ZoneInfo(tenant.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Tenant {tenant.id} has unknown timezone {tenant.timezone}, using UTC")
        return ZoneInfo("UTC")


class AvailabilityEngine:
    """Computes occupied and free slots and reserves them"""

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        clock: Callable[[ZoneInfo], datetime] = datetime.now
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock

    def tenant_now(self, tenant: Tenant) -> datetime:
        """Current wall-clock time in the tenant's timezone, naive"""
        return self.clock(tenant_zone(tenant)).replace(tzinfo=None)

    def get_occupied_slots(
        self,
        tenant_id: uuid.UUID,
        start_date: Union[str, date],
        end_date: Union[str, date],
        exclude_appointment_id: Optional[uuid.UUID] = None
    ) -> List[Slot]:
        """Slots held by pending, confirmed or in-progress appointments"""
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)

        query = select(Appointment.scheduled_date, Appointment.scheduled_time).where(
            Appointment.tenant_id == tenant_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.scheduled_date >= start_date,
            Appointment.scheduled_date <= end_date,
        )
        if exclude_appointment_id is not None:
            query = query.where(Appointment.id != exclude_appointment_id)

        try:
            rows = self.session.exec(query).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load occupied slots for tenant {tenant_id}: {e}")
            raise StorageError("Failed to load availability")

        return sorted({Slot(row[0], truncate_to_minute(row[1])) for row in rows})

    def is_slot_free(
        self,
        tenant_id: uuid.UUID,
        scheduled_date: date,
        scheduled_time: time,
        exclude_appointment_id: Optional[uuid.UUID] = None
    ) -> bool:
        wanted = Slot(scheduled_date, truncate_to_minute(scheduled_time))
        occupied = self.get_occupied_slots(
            tenant_id, scheduled_date, scheduled_date, exclude_appointment_id
        )
        return wanted not in occupied

    def ensure_future(self, tenant: Tenant, scheduled_date: date, scheduled_time: time) -> None:
        requested = datetime.combine(scheduled_date, truncate_to_minute(scheduled_time))
        if requested <= self.tenant_now(tenant):
            raise BookingValidationError("Appointment date and time must be in the future")

    def validate_slot(
        self,
        tenant: Tenant,
        scheduled_date: Union[str, date],
        scheduled_time: Union[str, time],
        exclude_appointment_id: Optional[uuid.UUID] = None
    ) -> Slot:
        """Parse, check the slot is in the future and not already held"""
        parsed_date = parse_date(scheduled_date)
        parsed_time = parse_time(scheduled_time)
        self.ensure_future(tenant, parsed_date, parsed_time)

        if not self.is_slot_free(tenant.id, parsed_date, parsed_time, exclude_appointment_id):
            logger.info(f"Slot {parsed_date} {parsed_time} already held for tenant {tenant.id}")
            raise SlotConflictError(SLOT_TAKEN)
        return Slot(parsed_date, parsed_time)

    def get_available_slots(
        self,
        tenant: Tenant,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None
    ) -> Dict[str, list]:
        """Booking calendar: free slot times per day plus the booked slots"""
        today = self.tenant_now(tenant).date()
        start = parse_date(start_date) if start_date else today
        end = parse_date(end_date) if end_date else start + timedelta(days=self.settings.AVAILABILITY_DEFAULT_DAYS)

        if start > end:
            raise BookingValidationError("start_date must not be after end_date")
        if (end - start).days > self.settings.AVAILABILITY_MAX_DAYS:
            raise BookingValidationError(
                f"Date range cannot exceed {self.settings.AVAILABILITY_MAX_DAYS} days"
            )

        slot_times = [parse_time(t) for t in self.settings.BOOKING_SLOT_TIMES]
        occupied = self.get_occupied_slots(tenant.id, start, end)
        occupied_set = set(occupied)
        now = self.tenant_now(tenant)

        available = []
        day = start
        while day <= end:
            times = [
                t.strftime("%H:%M")
                for t in slot_times
                if Slot(day, t) not in occupied_set and datetime.combine(day, t) > now
            ]
            available.append({"date": day.isoformat(), "times": times})
            day += timedelta(days=1)

        return {
            "available_slots": available,
            "booked_slots": [{"date": s.date.isoformat(), "time": s.label()} for s in occupied],
        }

    def reserve(
        self,
        tenant: Tenant,
        customer_id: uuid.UUID,
        scheduled_date: Union[str, date],
        scheduled_time: Union[str, time],
        service_name: str,
        amount: Optional[Decimal] = None,
        notes: Optional[str] = None
    ) -> Appointment:
        """Insert a pending appointment unless the slot is held

        Commits the session, so anything flushed before (such as a newly
        resolved customer) is committed or rolled back together with the
        appointment.
        """
        slot = self.validate_slot(tenant, scheduled_date, scheduled_time)

        appointment = Appointment(
            tenant_id=tenant.id,
            customer_id=customer_id,
            scheduled_date=slot.date,
            scheduled_time=slot.time,
            slot_time=truncate_to_minute(slot.time),
            service_name=service_name,
            amount=amount,
            notes=notes,
            status=AppointmentStatus.PENDING,
        )

        try:
            self.session.add(appointment)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if is_slot_conflict(e):
                logger.warning(f"Concurrent booking lost the race for {slot.date} {slot.time} (tenant {tenant.id})")
                raise SlotConflictError(SLOT_TAKEN)
            logger.error(f"Failed to create appointment: {e}")
            raise StorageError("Failed to create appointment")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create appointment: {e}")
            raise StorageError("Failed to create appointment")

        self.session.refresh(appointment)
        logger.info(f"Reserved {slot.date} {slot.time} for tenant {tenant.id}: appointment {appointment.id}")
        return appointment
