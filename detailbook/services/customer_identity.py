"""
Customer identity resolution for booking submissions

Phone number is the durable key of a repeat customer, but a different
name on the same phone means a different person sharing the line. The
match order is fixed:

1. phone + email (when an email was given)
2. phone alone (only when no email was given, or step 1 found nothing)
3. name gate: a matched record is reused only if its name matches;
   otherwise a new customer is created and the match left untouched.

A reused record may get its email, address and notes updated. Its name
is never overwritten.
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
import structlog

from detailbook.core.exceptions import BookingValidationError, StorageError
from detailbook.core.validators import clean_optional, validate_email, validate_phone
from detailbook.models.customer import Customer

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("email", "address", "notes")


class CustomerIdentityResolver:
    """Decides whether a booking reuses a customer record or creates one

    Changes are flushed but not committed so the caller can commit the
    customer together with the appointment it books.
    """

    def __init__(self, session: Session):
        self.session = session

    def resolve_or_create(
        self,
        phone: str,
        email: Optional[str] = None,
        name: str = None,
        address: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Customer:
        phone = validate_phone(phone)
        email = validate_email(email)
        if name is None or not name.strip():
            raise BookingValidationError("Customer name is required")
        name = name.strip()
        address = clean_optional(address)
        notes = clean_optional(notes)

        try:
            candidates: List[Customer] = []
            if email:
                candidates = self._find(phone=phone, email=email)
            if not candidates:
                candidates = self._find(phone=phone)

            if not candidates:
                return self._create(name, phone, email, address, notes)

            match = next((c for c in candidates if c.name_matches(name)), None)
            if match is None:
                logger.info(
                    f"Phone {phone} matched customer {candidates[0].id} with a different name, "
                    f"creating a separate customer"
                )
                return self._create(name, phone, email, address, notes)

            return self._update_contact(match, email=email, address=address, notes=notes)

        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to resolve customer for phone {phone}: {e}")
            raise StorageError("Failed to save customer")

    def _find(self, phone: str, email: Optional[str] = None) -> List[Customer]:
        query = select(Customer).where(Customer.phone == phone)
        if email:
            query = query.where(Customer.email == email)
        return list(self.session.exec(query.order_by(Customer.created_at, Customer.id)).all())

    def _create(
        self,
        name: str,
        phone: str,
        email: Optional[str],
        address: Optional[str],
        notes: Optional[str]
    ) -> Customer:
        customer = Customer(name=name, phone=phone, email=email, address=address, notes=notes)
        self.session.add(customer)
        self.session.flush()
        logger.info(f"Created customer {customer.id}")
        return customer

    def _update_contact(self, customer: Customer, **incoming: Optional[str]) -> Customer:
        changed = False
        for field in UPDATABLE_FIELDS:
            value = incoming.get(field)
            if value and value != getattr(customer, field):
                setattr(customer, field, value)
                changed = True

        if changed:
            customer.updated_at = datetime.utcnow()
            self.session.add(customer)
            self.session.flush()
            logger.info(f"Updated contact details of customer {customer.id}")
        return customer
