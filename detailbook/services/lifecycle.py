"""
Appointment lifecycle

Owns the status state machine and the notifications each transition
triggers:

    pending -> confirmed -> in_progress -> completed
    pending | confirmed               -> pending      (reschedule, reason required)
    pending | confirmed | in_progress -> cancelled    (reason required)
    pending | confirmed               -> no_show      (operator-set)

cancelled, completed and no_show are terminal. Only cancelled
appointments may be purged.

Validation and ownership checks run before anything is written. The state
change is committed before the customer is notified, and a failed
notification is reported next to the successful transition.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from functools import partial
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Union
import uuid
from zoneinfo import ZoneInfo

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from detailbook.core.config import Settings, get_settings
from detailbook.core.events import (
    EventBus, AppointmentEvent, AppointmentBooked, AppointmentConfirmed,
    AppointmentRescheduleRequested, AppointmentCancelled, AppointmentStarted,
    AppointmentCompleted, AppointmentNoShow, AppointmentPurged, ReminderSent
)
from detailbook.core.exceptions import (
    BookingValidationError, ForbiddenError, NotFoundError, SlotConflictError, StorageError
)
from detailbook.core.validators import (
    clean_optional, parse_date, require_reason, validate_email, validate_phone
)
from detailbook.models.appointment import Appointment, AppointmentStatus, PaymentStatus
from detailbook.models.customer import Customer
from detailbook.models.notification_log import NotificationKind, NotificationLog, NotificationStatus
from detailbook.models.service import Service
from detailbook.models.tenant import Tenant
from detailbook.schemas.booking import CustomerDetails
from detailbook.services import notifications
from detailbook.services.access_gate import AccessGate
from detailbook.services.availability import AvailabilityEngine, SLOT_TAKEN, is_slot_conflict
from detailbook.services.customer_identity import CustomerIdentityResolver
from detailbook.services.notifications import DeliveryStatus, NotificationProvider, NotificationResult
from detailbook.services.tenant_resolver import TenantRef, TenantResolver

logger = structlog.get_logger(__name__)

MAX_LIST_LIMIT = 500


@dataclass
class TransitionResult:
    """A committed state change and the outcome of its notification"""
    appointment: Appointment
    notification: Optional[NotificationResult] = None


class AppointmentLifecycle:
    """Entry point for booking and every appointment transition"""

    def __init__(
        self,
        session: Session,
        notifier: NotificationProvider,
        events: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[ZoneInfo], datetime] = datetime.now,
        access_clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.session = session
        self.notifier = notifier
        self.events = events or EventBus()
        self.settings = settings or get_settings()
        self.resolver = TenantResolver(session)
        self.customers = CustomerIdentityResolver(session)
        self.availability = AvailabilityEngine(session, self.settings, clock)
        self.gate = AccessGate(session, access_clock)

    # Creation

    def book(
        self,
        tenant_ref: TenantRef,
        service_id: str,
        scheduled_date: Union[str, date],
        scheduled_time: Union[str, time],
        customer: CustomerDetails,
        service_name: Optional[str] = None,
        service_price: Optional[Decimal] = None
    ) -> Appointment:
        """Public booking: slot check, customer dedup, then a pending appointment"""
        tenant = self.resolver.get_tenant(tenant_ref)
        self.gate.require_access(tenant.id)

        validate_phone(customer.phone)
        validate_email(customer.email)
        if not customer.name or not customer.name.strip():
            raise BookingValidationError("Customer name is required")

        name, price = self._resolve_service(tenant, service_id, service_name, service_price)
        self.availability.validate_slot(tenant, scheduled_date, scheduled_time)

        record = self.customers.resolve_or_create(
            phone=customer.phone,
            email=customer.email,
            name=customer.name,
            address=customer.address,
            notes=customer.notes,
        )
        appointment = self.availability.reserve(
            tenant,
            customer_id=record.id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            service_name=name,
            amount=price,
        )
        self._publish(AppointmentBooked, appointment)
        return appointment

    def create(
        self,
        claimed_tenant_id: TenantRef,
        customer_id: uuid.UUID,
        scheduled_date: Union[str, date],
        scheduled_time: Union[str, time],
        service_name: str,
        amount: Optional[Decimal] = None,
        notes: Optional[str] = None,
        tenant_ref: Optional[TenantRef] = None
    ) -> Appointment:
        """Operator creates an appointment for an existing customer"""
        target = tenant_ref or claimed_tenant_id
        if not self.resolver.authorize(claimed_tenant_id, target):
            raise ForbiddenError("Forbidden")
        tenant = self.resolver.get_tenant(target)
        self.gate.require_access(tenant.id)

        if not service_name or not service_name.strip():
            raise BookingValidationError("Service name is required")
        amount = self._validate_amount(amount)

        if self._get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")

        appointment = self.availability.reserve(
            tenant,
            customer_id=customer_id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            service_name=service_name.strip(),
            amount=amount,
            notes=clean_optional(notes),
        )
        self._publish(AppointmentBooked, appointment)
        return appointment

    # Queries

    def get(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> Appointment:
        return self._load_owned(appointment_id, claimed_tenant_id)

    def list_appointments(
        self,
        claimed_tenant_id: TenantRef,
        tenant_ref: Optional[TenantRef] = None,
        status: Optional[str] = None,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None,
        limit: int = 50
    ) -> List[Appointment]:
        target = tenant_ref or claimed_tenant_id
        if not self.resolver.authorize(claimed_tenant_id, target):
            raise ForbiddenError("Forbidden")
        tenant_id = self.resolver.resolve(target)

        query = select(Appointment).where(Appointment.tenant_id == tenant_id)
        if status:
            try:
                query = query.where(Appointment.status == AppointmentStatus(status))
            except ValueError:
                valid = ", ".join(s.value for s in AppointmentStatus)
                raise BookingValidationError(f"Invalid status. Must be one of: {valid}")
        if start_date:
            query = query.where(Appointment.scheduled_date >= parse_date(start_date))
        if end_date:
            query = query.where(Appointment.scheduled_date <= parse_date(end_date))

        query = query.order_by(Appointment.scheduled_date, Appointment.scheduled_time)
        query = query.limit(max(1, min(limit, MAX_LIST_LIMIT)))

        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list appointments for tenant {tenant_id}: {e}")
            raise StorageError("Failed to fetch appointments")

    # Transitions

    def confirm(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> TransitionResult:
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.transition_to_confirmed()
        self._commit(appointment, "confirm")
        self._publish(AppointmentConfirmed, appointment)

        notification = self._notify(appointment, NotificationKind.CONFIRMATION, notifications.confirmation_message)
        return TransitionResult(appointment, notification)

    def reschedule(
        self,
        appointment_id: uuid.UUID,
        claimed_tenant_id: TenantRef,
        reason: Optional[str],
        new_date: Optional[Union[str, date]] = None,
        new_time: Optional[Union[str, time]] = None
    ) -> TransitionResult:
        """Send the appointment back to pending with a reason

        Without a new date or time this is a notice asking the customer to
        pick another slot; with one, the appointment moves to that slot.
        """
        reason = require_reason(reason, "Reschedule")
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.ensure(appointment.can_reschedule())

        moved = new_date is not None or new_time is not None
        target_date = target_time = None
        if moved:
            tenant = self.resolver.get_tenant(appointment.tenant_id)
            slot = self.availability.validate_slot(
                tenant,
                new_date if new_date is not None else appointment.scheduled_date,
                new_time if new_time is not None else appointment.scheduled_time,
                exclude_appointment_id=appointment.id,
            )
            target_date, target_time = slot.date, slot.time

        appointment.transition_to_rescheduled(reason, target_date, target_time)
        self._commit(appointment, "reschedule")
        self._publish(AppointmentRescheduleRequested, appointment, reason)

        template = notifications.moved_message if moved else notifications.reschedule_message
        notification = self._notify(appointment, NotificationKind.RESCHEDULE, partial(template, reason=reason))
        return TransitionResult(appointment, notification)

    def cancel(
        self,
        appointment_id: uuid.UUID,
        claimed_tenant_id: TenantRef,
        reason: Optional[str] = None
    ) -> TransitionResult:
        reason = require_reason(reason, "Cancellation")
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.transition_to_cancelled(reason)
        self._commit(appointment, "cancel")
        self._publish(AppointmentCancelled, appointment, reason)

        template = partial(notifications.cancellation_message, reason=reason)
        notification = self._notify(appointment, NotificationKind.CANCELLATION, template)
        return TransitionResult(appointment, notification)

    def send_reminder(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> TransitionResult:
        """Remind the customer; no status change, flag set only on success"""
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.ensure(appointment.can_send_reminder())

        notification = self._notify(appointment, NotificationKind.REMINDER, notifications.reminder_message)
        if notification.sent:
            appointment.mark_reminder_sent()
            self._commit(appointment, "mark reminder sent")
            self._publish(ReminderSent, appointment)
        return TransitionResult(appointment, notification)

    def start(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> TransitionResult:
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.transition_to_in_progress()
        self._commit(appointment, "start")
        self._publish(AppointmentStarted, appointment)
        return TransitionResult(appointment)

    def complete(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> TransitionResult:
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.transition_to_completed()
        self._commit(appointment, "complete")
        self._publish(AppointmentCompleted, appointment)
        return TransitionResult(appointment)

    def mark_no_show(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> TransitionResult:
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.transition_to_no_show()
        self._commit(appointment, "mark no-show")
        self._publish(AppointmentNoShow, appointment)
        return TransitionResult(appointment)

    def update_details(
        self,
        appointment_id: uuid.UUID,
        claimed_tenant_id: TenantRef,
        notes: Optional[str] = None,
        payment_status: Optional[Union[str, PaymentStatus]] = None
    ) -> Appointment:
        """Edit notes or record the payment processor's status"""
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)

        if payment_status is not None:
            try:
                appointment.payment_status = PaymentStatus(payment_status)
            except ValueError:
                valid = ", ".join(s.value for s in PaymentStatus)
                raise BookingValidationError(f"Invalid payment_status. Must be one of: {valid}")
        if notes is not None:
            appointment.notes = clean_optional(notes)

        appointment.updated_at = datetime.utcnow()
        self._commit(appointment, "update")
        return appointment

    def purge(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> None:
        """Permanently delete a cancelled appointment"""
        appointment = self._load_for_change(appointment_id, claimed_tenant_id)
        appointment.ensure(appointment.can_purge())

        event = AppointmentPurged(appointment.id, appointment.tenant_id, appointment.status.value)
        try:
            self.session.delete(appointment)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to delete appointment {appointment_id}: {e}")
            raise StorageError("Failed to delete appointment")

        logger.info(f"Purged appointment {appointment_id}")
        self.events.publish(event)

    # Helpers

    def _get(self, model, key):
        try:
            return self.session.get(model, key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {model.__name__} {key}: {e}")
            raise StorageError(f"Failed to load {model.__name__.lower()}")

    def _load_owned(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> Appointment:
        appointment = self._get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        if not self.resolver.authorize(claimed_tenant_id, appointment.tenant_id):
            logger.warning(f"Tenant {claimed_tenant_id} denied access to appointment {appointment_id}")
            raise ForbiddenError("Forbidden")
        return appointment

    def _load_for_change(self, appointment_id: uuid.UUID, claimed_tenant_id: TenantRef) -> Appointment:
        appointment = self._load_owned(appointment_id, claimed_tenant_id)
        self.gate.require_access(appointment.tenant_id)
        return appointment

    def _commit(self, appointment: Appointment, action: str) -> None:
        """Persist a change; on failure the previous state is restored"""
        try:
            self.session.add(appointment)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if is_slot_conflict(e):
                raise SlotConflictError(SLOT_TAKEN)
            logger.error(f"Failed to {action} appointment {appointment.id}: {e}")
            raise StorageError(f"Failed to {action} appointment")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {action} appointment {appointment.id}: {e}")
            raise StorageError(f"Failed to {action} appointment")

        self.session.refresh(appointment)
        logger.info(f"Appointment {appointment.id} {action}: status={appointment.status.value}")

    def _publish(self, event_cls, appointment: Appointment, reason: Optional[str] = None) -> None:
        event: AppointmentEvent = event_cls(
            appointment.id, appointment.tenant_id, appointment.status.value, reason
        )
        self.events.publish(event)

    def _notify(self, appointment: Appointment, kind: NotificationKind, template) -> NotificationResult:
        """Attempt the notification and record it; never raises"""
        customer = self._get(Customer, appointment.customer_id)
        tenant = self._get(Tenant, appointment.tenant_id)

        recipient = customer.phone if customer else None
        body = ""
        if customer is None or not recipient:
            result = NotificationResult(
                status=DeliveryStatus.SKIPPED, error="Customer phone number not available"
            )
        else:
            body = template(
                customer.name,
                appointment.service_name,
                appointment.scheduled_date,
                appointment.scheduled_time,
                tenant.business_name if tenant else "your detailer",
            )
            try:
                result = self.notifier.send(recipient, body)
            except Exception as e:
                logger.error(f"Notification provider raised for appointment {appointment.id}: {e}")
                result = NotificationResult(status=DeliveryStatus.FAILED, error=str(e) or "Failed to send SMS")

        logger.info(
            f"{kind.value} notification for appointment {appointment.id}: {result.status.value}",
            error=result.error,
        )
        self._record(appointment, kind, recipient, body, result)
        return result

    def _record(
        self,
        appointment: Appointment,
        kind: NotificationKind,
        recipient: Optional[str],
        body: str,
        result: NotificationResult
    ) -> None:
        entry = NotificationLog(
            tenant_id=appointment.tenant_id,
            appointment_id=appointment.id,
            kind=kind,
            recipient=recipient,
            message_body=body,
            status=NotificationStatus(result.status.value),
            provider_message_id=result.message_id,
            error_message=result.error,
        )
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError as e:
            # The transition is already committed; losing the log entry must not undo it
            self.session.rollback()
            logger.error(f"Failed to record {kind.value} notification for {appointment.id}: {e}")

    def _resolve_service(
        self,
        tenant: Tenant,
        service_id: str,
        service_name: Optional[str],
        service_price: Optional[Decimal]
    ) -> tuple[str, Optional[Decimal]]:
        """Persisted service of the tenant, or an ad-hoc name and price"""
        service = None
        try:
            service_uuid = uuid.UUID(str(service_id))
        except (ValueError, TypeError):
            service_uuid = None

        if service_uuid is not None:
            try:
                service = self.session.exec(
                    select(Service).where(Service.id == service_uuid, Service.tenant_id == tenant.id)
                ).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to load service {service_id}: {e}")
                raise StorageError("Failed to load service")

        if service is not None:
            if not service.is_active:
                raise BookingValidationError("Service is inactive")
            return service.name, service.price

        if service_name and service_name.strip() and service_price is not None:
            return service_name.strip(), self._validate_amount(service_price)

        raise NotFoundError("Service not found. Please provide service name and price.")

    @staticmethod
    def _validate_amount(amount) -> Optional[Decimal]:
        if amount is None:
            return None
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise BookingValidationError("Amount must be a positive number")
        if not value.is_finite() or value < 0:
            raise BookingValidationError("Amount must be a positive number")
        return value
