"""
Pydantic schemas for appointments
"""

from pydantic import BaseModel, Field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
import uuid

from detailbook.models.appointment import AppointmentStatus, PaymentStatus
from detailbook.services.notifications import DeliveryStatus


class AppointmentCreate(BaseModel):
    """Appointment created manually by the operator"""
    tenant_id: Optional[str] = Field(default=None, description="Internal id or slug, defaults to caller's tenant")
    customer_id: uuid.UUID
    scheduled_date: str
    scheduled_time: str
    service_name: str = Field(..., min_length=1, max_length=200)
    amount: Optional[Decimal] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class AppointmentUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)
    payment_status: Optional[PaymentStatus] = None


class ReasonRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleRequest(ReasonRequest):
    new_date: Optional[str] = None
    new_time: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    customer_id: uuid.UUID
    scheduled_date: date
    scheduled_time: time
    service_name: str
    amount: Optional[Decimal] = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    notes: Optional[str] = None
    reminder_sent: bool
    cancellation_reason: Optional[str] = None
    reschedule_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationOutcome(BaseModel):
    status: DeliveryStatus
    message_id: Optional[str] = None
    error: Optional[str] = None


class TransitionResponse(BaseModel):
    appointment: AppointmentResponse
    notification: Optional[NotificationOutcome] = None
