"""
Customer API endpoints for tenant operators
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import uuid
import structlog

from detailbook.core.dependencies import get_customer_directory, get_tenant_id
from detailbook.schemas.appointment import NotificationOutcome
from detailbook.schemas.customer import BookingInviteRequest, CustomerCreate, CustomerResponse, CustomerUpdate
from detailbook.services.customer_directory import CustomerDirectory

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=List[CustomerResponse])
def list_customers(
    search: Optional[str] = Query(default=None, description="Matches name, email or phone"),
    limit: int = Query(default=50, ge=1, le=500),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    directory: CustomerDirectory = Depends(get_customer_directory)
):
    """Customers the caller's tenant has served"""
    return directory.list_for_tenant(tenant_id, search=search, limit=limit)


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_in: CustomerCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    directory: CustomerDirectory = Depends(get_customer_directory)
):
    """Add a customer; an existing record with the same phone and name is reused"""
    return directory.create(tenant_id, **customer_in.model_dump())


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    directory: CustomerDirectory = Depends(get_customer_directory)
):
    return directory.get_for_tenant(customer_id, tenant_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: uuid.UUID,
    customer_update: CustomerUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    directory: CustomerDirectory = Depends(get_customer_directory)
):
    return directory.update(customer_id, tenant_id, **customer_update.model_dump(exclude_unset=True))


@router.post("/{customer_id}/booking-invite", response_model=NotificationOutcome)
def send_booking_invite(
    customer_id: uuid.UUID,
    invite: Optional[BookingInviteRequest] = None,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    directory: CustomerDirectory = Depends(get_customer_directory)
):
    """Text the customer a link to the booking page"""
    result = directory.send_booking_invite(customer_id, tenant_id, invite.message if invite else None)
    return NotificationOutcome(**result.model_dump())
