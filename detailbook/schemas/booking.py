"""
Pydantic schemas for the public booking surface
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List, Optional


class CustomerDetails(BaseModel):
    """Contact details submitted with a booking"""
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BookingRequest(BaseModel):
    """Booking submitted from a tenant's public page

    ``service_name`` and ``service_price`` describe an ad-hoc service when
    the tenant has not configured ``service_id``.
    """
    service_id: str = Field(..., min_length=1)
    service_name: Optional[str] = None
    service_price: Optional[Decimal] = None
    scheduled_date: str = Field(..., description="YYYY-MM-DD")
    scheduled_time: str = Field(..., description="HH:MM or HH:MM:SS")
    customer: CustomerDetails


class DaySlots(BaseModel):
    date: str
    times: List[str]


class BookedSlot(BaseModel):
    date: str
    time: str


class AvailabilityResponse(BaseModel):
    available_slots: List[DaySlots]
    booked_slots: List[BookedSlot]


class ServiceSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_minutes: int


class TenantInfoResponse(BaseModel):
    id: str
    slug: str
    business_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    timezone: str
    services: List[ServiceSummary]
