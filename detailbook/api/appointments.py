"""
Appointment API endpoints for tenant operators
"""

from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional
import uuid
import structlog

from detailbook.core.dependencies import get_lifecycle, get_tenant_id
from detailbook.schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentUpdate, NotificationOutcome,
    ReasonRequest, RescheduleRequest, TransitionResponse
)
from detailbook.services.lifecycle import AppointmentLifecycle, TransitionResult

logger = structlog.get_logger(__name__)
router = APIRouter()


def _to_response(result: TransitionResult) -> TransitionResponse:
    notification = None
    if result.notification is not None:
        notification = NotificationOutcome(**result.notification.model_dump())
    return TransitionResponse(
        appointment=AppointmentResponse.model_validate(result.appointment),
        notification=notification,
    )


@router.get("/", response_model=List[AppointmentResponse])
def list_appointments(
    tenant: Optional[str] = Query(default=None, description="Tenant ID or slug, defaults to caller's tenant"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """List appointments of a tenant, ordered by date and time"""
    return lifecycle.list_appointments(
        tenant_id,
        tenant_ref=tenant,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )


@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    appointment: AppointmentCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Create an appointment for an existing customer"""
    return lifecycle.create(
        tenant_id,
        customer_id=appointment.customer_id,
        scheduled_date=appointment.scheduled_date,
        scheduled_time=appointment.scheduled_time,
        service_name=appointment.service_name,
        amount=appointment.amount,
        notes=appointment.notes,
        tenant_ref=appointment.tenant_id,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return lifecycle.get(appointment_id, tenant_id)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: uuid.UUID,
    update: AppointmentUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Update notes or payment status"""
    return lifecycle.update_details(
        appointment_id,
        tenant_id,
        notes=update.notes,
        payment_status=update.payment_status,
    )


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def purge_appointment(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Permanently delete a cancelled appointment"""
    lifecycle.purge(appointment_id, tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{appointment_id}/confirm", response_model=TransitionResponse)
def confirm_appointment(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Confirm a pending appointment and notify the customer"""
    return _to_response(lifecycle.confirm(appointment_id, tenant_id))


@router.post("/{appointment_id}/reschedule", response_model=TransitionResponse)
def reschedule_appointment(
    appointment_id: uuid.UUID,
    request: RescheduleRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    """Send back to pending with a reason, optionally moving the slot"""
    result = lifecycle.reschedule(
        appointment_id,
        tenant_id,
        request.reason,
        new_date=request.new_date,
        new_time=request.new_time,
    )
    return _to_response(result)


@router.post("/{appointment_id}/cancel", response_model=TransitionResponse)
def cancel_appointment(
    appointment_id: uuid.UUID,
    request: ReasonRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return _to_response(lifecycle.cancel(appointment_id, tenant_id, request.reason))


@router.post("/{appointment_id}/reminder", response_model=TransitionResponse)
def send_appointment_reminder(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return _to_response(lifecycle.send_reminder(appointment_id, tenant_id))


@router.post("/{appointment_id}/start", response_model=TransitionResponse)
def start_appointment(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return _to_response(lifecycle.start(appointment_id, tenant_id))


@router.post("/{appointment_id}/complete", response_model=TransitionResponse)
def complete_appointment(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return _to_response(lifecycle.complete(appointment_id, tenant_id))


@router.post("/{appointment_id}/no-show", response_model=TransitionResponse)
def mark_appointment_no_show(
    appointment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle)
):
    return _to_response(lifecycle.mark_no_show(appointment_id, tenant_id))
