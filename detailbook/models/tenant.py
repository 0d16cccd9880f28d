"""
Tenant model - a detailing business publishing a booking page
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class SubscriptionStatus(str, Enum):
    """Externally maintained subscription state"""
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Tenant(SQLModel, table=True):
    """Tenant model for multi-tenant architecture"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    slug: str = Field(
        unique=True,
        index=True,
        max_length=40,
        description="Public identifier used in booking links"
    )
    business_name: str = Field(index=True, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

    # IANA zone used to decide whether a requested slot is in the future
    timezone: str = Field(default="UTC", max_length=64)

    # Subscription (maintained by the billing provider, read by the access gate)
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.TRIAL, index=True)
    subscription_plan: Optional[str] = Field(default=None, max_length=50)
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    is_active: bool = Field(default=True, index=True)
