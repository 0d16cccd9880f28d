"""
Test configuration for pytest
"""

import pytest
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session
from typing import Generator, List, Optional, Tuple
import uuid

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_PHONE_NUMBER"] = ""

import detailbook.models  # noqa: E402,F401
from detailbook.core.events import EventBus  # noqa: E402
from detailbook.models.customer import Customer  # noqa: E402
from detailbook.models.service import Service  # noqa: E402
from detailbook.models.tenant import SubscriptionStatus, Tenant  # noqa: E402
from detailbook.services.lifecycle import AppointmentLifecycle  # noqa: E402
from detailbook.services.notifications import (  # noqa: E402
    DeliveryStatus, NotificationProvider, NotificationResult
)


# In-memory SQLite shared by every connection of the test engine
test_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# "now" for unit tests: Saturday, March 1, 2025 08:00 UTC
NOW = datetime(2025, 3, 1, 8, 0)


def fixed_clock(tz=None):
    """Stands in for datetime.now(tz)"""
    instant = NOW.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz) if tz is not None else NOW


def fixed_utc_clock():
    return NOW


class RecordingNotifier(NotificationProvider):
    """Notification provider double that records every send"""

    def __init__(self, status: DeliveryStatus = DeliveryStatus.SENT, error: Optional[str] = None):
        self.status = status
        self.error = error
        self.sent: List[Tuple[str, str]] = []

    def send(self, recipient: str, message: str) -> NotificationResult:
        self.sent.append((recipient, message))
        if self.status == DeliveryStatus.SENT:
            return NotificationResult(status=DeliveryStatus.SENT, message_id=f"SM{len(self.sent):04d}")
        return NotificationResult(status=self.status, error=self.error)


class ExplodingNotifier(NotificationProvider):
    def send(self, recipient: str, message: str) -> NotificationResult:
        raise RuntimeError("provider unreachable")


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    # Create all tables
    SQLModel.metadata.create_all(test_engine)

    # Create session
    with Session(test_engine) as session:
        yield session

    # Cleanup
    SQLModel.metadata.drop_all(test_engine)


def make_tenant(session: Session, slug: str, business_name: str = None, **overrides) -> Tenant:
    values = dict(
        slug=slug,
        business_name=business_name or slug.replace("-", " ").title(),
        phone="555-0199",
        subscription_status=SubscriptionStatus.TRIAL,
        trial_ends_at=datetime.utcnow() + timedelta(days=14),
    )
    values.update(overrides)
    tenant = Tenant(**values)
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    return tenant


@pytest.fixture
def tenant(db: Session) -> Tenant:
    return make_tenant(db, "detailer-42", "Shine Detailing")


@pytest.fixture
def other_tenant(db: Session) -> Tenant:
    return make_tenant(db, "other-shop", "Other Shop")


@pytest.fixture
def customer(db: Session) -> Customer:
    record = Customer(name="Ana Silva", phone="555-0100", email="ana@example.com")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def service(db: Session, tenant: Tenant) -> Service:
    record = Service(
        tenant_id=tenant.id,
        name="Full Detail",
        description="Interior and exterior",
        price=Decimal("149.00"),
        duration_minutes=180,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def lifecycle(db: Session, notifier: RecordingNotifier, events: EventBus) -> AppointmentLifecycle:
    return AppointmentLifecycle(
        db,
        notifier,
        events,
        clock=fixed_clock,
        access_clock=fixed_utc_clock,
    )


@pytest.fixture
def tenant_factory(db: Session):
    def factory(slug: str, business_name: str = None, **overrides) -> Tenant:
        return make_tenant(db, slug, business_name, **overrides)
    return factory


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(DeliveryStatus.FAILED, "[21211] Invalid 'To' Phone Number")


@pytest.fixture
def exploding_notifier() -> ExplodingNotifier:
    return ExplodingNotifier()


@pytest.fixture
def lifecycle_with(db: Session, events: EventBus):
    """Build a lifecycle around another notification provider"""
    def factory(provider: NotificationProvider) -> AppointmentLifecycle:
        return AppointmentLifecycle(db, provider, events, clock=fixed_clock, access_clock=fixed_utc_clock)
    return factory


@pytest.fixture
def api_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
async def client(db: Session, api_notifier: RecordingNotifier):
    """HTTP client against the app, bound to the test session"""
    from httpx import AsyncClient, ASGITransport
    from detailbook.core.database import get_session
    from detailbook.core.dependencies import get_notification_provider
    from detailbook.main import app

    def override_session():
        yield db

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notification_provider] = lambda: api_notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(tenant: Tenant) -> dict:
    from detailbook.core.auth import create_access_token

    token = create_access_token(user_id=uuid.uuid4(), tenant_id=tenant.id)
    return {"Authorization": f"Bearer {token}"}
