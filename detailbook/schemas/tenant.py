"""
Pydantic schemas for tenants
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
import uuid

from detailbook.models.tenant import SubscriptionStatus


class TenantCreate(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, max_length=40, description="Derived from business_name when omitted")
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    timezone: str = Field(default="UTC", max_length=64)


class TenantResponse(BaseModel):
    id: uuid.UUID
    slug: str
    business_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    timezone: str
    subscription_status: SubscriptionStatus
    subscription_plan: Optional[str] = None
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    days_left: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
