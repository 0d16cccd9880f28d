"""
Subscription access gate

Subscription status is maintained by the billing provider. The gate reads
it and, when a trial or subscription window has lapsed, flips the stored
status to expired the first time it notices (lazy expiry).
"""

from datetime import datetime
from typing import Callable, Optional
import math
import uuid

from pydantic import BaseModel
from sqlmodel import Session
from sqlalchemy.exc import SQLAlchemyError
import structlog

from detailbook.core.exceptions import NotFoundError, StorageError, SubscriptionRequiredError
from detailbook.models.tenant import SubscriptionStatus, Tenant

logger = structlog.get_logger(__name__)

ACCESS_STATUSES = (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE)


class SubscriptionInfo(BaseModel):
    status: SubscriptionStatus
    days_left: Optional[int] = None
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    subscription_plan: Optional[str] = None


def days_remaining(ends_at: datetime, now: datetime) -> int:
    seconds = (ends_at - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


class AccessGate:
    """Permits lifecycle operations only for tenants in trial or active"""

    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.clock = clock

    def get_status(self, tenant_id: uuid.UUID) -> SubscriptionInfo:
        tenant = self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        now = self.clock()
        status = tenant.subscription_status
        window_end = None
        if status == SubscriptionStatus.TRIAL:
            window_end = tenant.trial_ends_at
        elif status == SubscriptionStatus.ACTIVE:
            window_end = tenant.subscription_ends_at

        days_left = None
        if window_end is not None:
            days_left = days_remaining(window_end, now)
            if window_end <= now:
                self._expire(tenant, status)
                days_left = 0

        return SubscriptionInfo(
            status=tenant.subscription_status,
            days_left=days_left,
            trial_ends_at=tenant.trial_ends_at,
            subscription_ends_at=tenant.subscription_ends_at,
            subscription_plan=tenant.subscription_plan,
        )

    def has_access(self, tenant_id: uuid.UUID) -> bool:
        return self.get_status(tenant_id).status in ACCESS_STATUSES

    def require_access(self, tenant_id: uuid.UUID) -> None:
        if not self.has_access(tenant_id):
            raise SubscriptionRequiredError(
                "Subscription required: your trial has ended. Please upgrade to continue."
            )

    def _expire(self, tenant: Tenant, previous: SubscriptionStatus) -> None:
        """Write happens once, on the transition into expired"""
        tenant.subscription_status = SubscriptionStatus.EXPIRED
        tenant.updated_at = datetime.utcnow()
        try:
            self.session.add(tenant)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to expire subscription of tenant {tenant.id}: {e}")
            raise StorageError("Failed to update subscription status")
        logger.info(f"Tenant {tenant.id} subscription lapsed: {previous.value} -> expired")
