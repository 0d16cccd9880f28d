"""
Public booking API endpoints

Reached from a tenant's booking page; the tenant is addressed by slug or
internal ID and no authentication is required.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select
from typing import Optional
import structlog

from detailbook.core.config import get_settings
from detailbook.core.database import get_session
from detailbook.core.dependencies import get_lifecycle
from detailbook.models.service import Service
from detailbook.schemas.appointment import AppointmentResponse
from detailbook.schemas.booking import (
    AvailabilityResponse, BookingRequest, ServiceSummary, TenantInfoResponse
)
from detailbook.services.availability import AvailabilityEngine
from detailbook.services.lifecycle import AppointmentLifecycle
from detailbook.services.tenant_resolver import TenantResolver

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/{tenant_ref}/info", response_model=TenantInfoResponse)
def get_booking_info(
    tenant_ref: str,
    session: Session = Depends(get_session)
):
    """Business details and active services for the booking page"""
    tenant = TenantResolver(session).get_tenant(tenant_ref)
    services = session.exec(
        select(Service)
        .where(Service.tenant_id == tenant.id, Service.is_active == True)  # noqa: E712
        .order_by(Service.name)
    ).all()

    return TenantInfoResponse(
        id=str(tenant.id),
        slug=tenant.slug,
        business_name=tenant.business_name,
        phone=tenant.phone,
        email=tenant.email,
        timezone=tenant.timezone,
        services=[
            ServiceSummary(
                id=str(s.id),
                name=s.name,
                description=s.description,
                price=s.price,
                duration_minutes=s.duration_minutes,
            )
            for s in services
        ],
    )


@router.get("/{tenant_ref}/availability", response_model=AvailabilityResponse)
def get_availability(
    tenant_ref: str,
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD, defaults to today"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session)
):
    """Free and booked slots of a tenant over a date range"""
    tenant = TenantResolver(session).get_tenant(tenant_ref)
    engine = AvailabilityEngine(session, get_settings())
    return engine.get_available_slots(tenant, start_date, end_date)


@router.post("/{tenant_ref}", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    tenant_ref: str,
    booking: BookingRequest,
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Book a slot; the appointment starts out pending"""
    appointment = lifecycle.book(
        tenant_ref,
        service_id=booking.service_id,
        scheduled_date=booking.scheduled_date,
        scheduled_time=booking.scheduled_time,
        customer=booking.customer,
        service_name=booking.service_name,
        service_price=booking.service_price,
    )
    logger.info(f"Booking created: {appointment.id} for tenant {appointment.tenant_id}")
    return appointment
