"""
FastAPI dependencies: operator authentication and engine wiring
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from functools import lru_cache
from sqlmodel import Session
import uuid
import structlog

from detailbook.core.auth import verify_token
from detailbook.core.config import get_settings
from detailbook.core.database import get_session
from detailbook.core.events import EventBus
from detailbook.services.customer_directory import CustomerDirectory
from detailbook.services.lifecycle import AppointmentLifecycle
from detailbook.services.notifications import NotificationProvider, build_notification_provider

logger = structlog.get_logger(__name__)
security = HTTPBearer()


def get_tenant_id(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> uuid.UUID:
    """Get the caller's tenant ID from the JWT"""
    tenant_id = verify_token(credentials.credentials)
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug(f"Operator authenticated for tenant: {tenant_id}")
    return tenant_id


@lru_cache()
def get_notification_provider() -> NotificationProvider:
    return build_notification_provider(get_settings())


@lru_cache()
def get_event_bus() -> EventBus:
    return EventBus()


def get_lifecycle(
    session: Session = Depends(get_session),
    notifier: NotificationProvider = Depends(get_notification_provider),
    events: EventBus = Depends(get_event_bus)
) -> AppointmentLifecycle:
    """Request-scoped lifecycle bound to the request's session"""
    return AppointmentLifecycle(session, notifier, events, get_settings())


def get_customer_directory(
    session: Session = Depends(get_session),
    notifier: NotificationProvider = Depends(get_notification_provider)
) -> CustomerDirectory:
    return CustomerDirectory(session, notifier, get_settings())
