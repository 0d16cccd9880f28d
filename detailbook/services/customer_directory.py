"""
Operator view of customers

Customers are shared across tenants, so a tenant only sees the ones it
has served: a customer belongs to a tenant's list once at least one
appointment links them.
"""

from datetime import datetime
from typing import Callable, List, Optional
import uuid

from sqlmodel import Session, select
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
import structlog

from detailbook.core.config import Settings, get_settings
from detailbook.core.exceptions import BookingValidationError, ForbiddenError, NotFoundError, StorageError
from detailbook.core.validators import clean_optional, validate_email, validate_phone
from detailbook.models.appointment import Appointment
from detailbook.models.customer import Customer
from detailbook.services import notifications
from detailbook.services.access_gate import AccessGate
from detailbook.services.customer_identity import CustomerIdentityResolver
from detailbook.services.notifications import DeliveryStatus, NotificationProvider, NotificationResult
from detailbook.services.tenant_resolver import TenantRef, TenantResolver

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = ("phone", "email", "address", "notes")


class CustomerDirectory:
    """List, create, edit and invite the customers of one tenant"""

    def __init__(
        self,
        session: Session,
        notifier: Optional[NotificationProvider] = None,
        settings: Optional[Settings] = None,
        access_clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.session = session
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.resolver = TenantResolver(session)
        self.identity = CustomerIdentityResolver(session)
        self.gate = AccessGate(session, access_clock)

    def list_for_tenant(
        self,
        claimed_tenant_id: TenantRef,
        search: Optional[str] = None,
        limit: int = 50
    ) -> List[Customer]:
        tenant_id = self.resolver.resolve(claimed_tenant_id)
        served = select(Appointment.customer_id).where(Appointment.tenant_id == tenant_id)
        query = select(Customer).where(Customer.id.in_(served))

        search = clean_optional(search)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.phone.contains(search),
                )
            )

        try:
            return list(self.session.exec(query.order_by(Customer.name).limit(limit)).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list customers for tenant {tenant_id}: {e}")
            raise StorageError("Failed to load customers")

    def get_for_tenant(self, customer_id: uuid.UUID, claimed_tenant_id: TenantRef) -> Customer:
        tenant_id = self.resolver.resolve(claimed_tenant_id)
        try:
            customer = self.session.get(Customer, customer_id)
            served = customer is not None and self.session.exec(
                select(Appointment.id).where(
                    Appointment.tenant_id == tenant_id,
                    Appointment.customer_id == customer_id,
                ).limit(1)
            ).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load customer {customer_id}: {e}")
            raise StorageError("Failed to load customer")

        if customer is None:
            raise NotFoundError("Customer not found")
        if not served:
            logger.warning(f"Tenant {tenant_id} denied access to customer {customer_id}")
            raise ForbiddenError("Customer not found in your customer list")
        return customer

    def create(
        self,
        claimed_tenant_id: TenantRef,
        name: str,
        phone: str,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Customer:
        """Add a customer by hand, reusing a matching record like a booking does"""
        tenant_id = self.resolver.resolve(claimed_tenant_id)
        self.gate.require_access(tenant_id)

        customer = self.identity.resolve_or_create(
            phone=phone, email=email, name=name, address=address, notes=notes
        )
        self._commit(customer, "save")
        logger.info(f"Tenant {tenant_id} added customer {customer.id}")
        return customer

    def update(self, customer_id: uuid.UUID, claimed_tenant_id: TenantRef, **changes) -> Customer:
        """Edit contact details; the name stays as first recorded"""
        customer = self.get_for_tenant(customer_id, claimed_tenant_id)
        self.gate.require_access(self.resolver.resolve(claimed_tenant_id))

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise BookingValidationError(f"Cannot update customer fields: {', '.join(sorted(unknown))}")

        cleaned = {}
        if "phone" in changes:
            cleaned["phone"] = validate_phone(changes["phone"])
        if "email" in changes:
            cleaned["email"] = validate_email(changes["email"])
        for field in ("address", "notes"):
            if field in changes:
                cleaned[field] = clean_optional(changes[field])

        for field, value in cleaned.items():
            setattr(customer, field, value)
        customer.updated_at = datetime.utcnow()
        self._commit(customer, "update")
        return customer

    def send_booking_invite(
        self,
        customer_id: uuid.UUID,
        claimed_tenant_id: TenantRef,
        message: Optional[str] = None
    ) -> NotificationResult:
        """Text the customer a link to the tenant's booking page"""
        customer = self.get_for_tenant(customer_id, claimed_tenant_id)
        tenant = self.resolver.get_tenant(claimed_tenant_id)
        self.gate.require_access(tenant.id)

        body = clean_optional(message)
        if body is None:
            link = f"{self.settings.PUBLIC_BOOKING_URL.rstrip('/')}/{self.resolver.slug_for(tenant.id)}"
            body = notifications.booking_invite_message(customer.name, tenant.business_name, link)

        try:
            result = self.notifier.send(customer.phone, body)
        except Exception as e:
            logger.error(f"Notification provider raised for invite to customer {customer_id}: {e}")
            result = NotificationResult(status=DeliveryStatus.FAILED, error=str(e) or "Failed to send SMS")

        logger.info(f"Booking invite to customer {customer_id}: {result.status.value}", error=result.error)
        return result

    def _commit(self, customer: Customer, action: str) -> None:
        try:
            self.session.add(customer)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {action} customer {customer.id}: {e}")
            raise StorageError(f"Failed to {action} customer")
        self.session.refresh(customer)
