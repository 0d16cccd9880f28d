"""
Schemas module
"""

from detailbook.schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentUpdate, ReasonRequest,
    RescheduleRequest, TransitionResponse
)
from detailbook.schemas.booking import AvailabilityResponse, BookingRequest, CustomerDetails, TenantInfoResponse
from detailbook.schemas.customer import BookingInviteRequest, CustomerCreate, CustomerResponse, CustomerUpdate
from detailbook.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from detailbook.schemas.tenant import TenantCreate, TenantResponse

__all__ = [
    "AppointmentCreate",
    "AppointmentResponse",
    "AppointmentUpdate",
    "ReasonRequest",
    "RescheduleRequest",
    "TransitionResponse",
    "AvailabilityResponse",
    "BookingRequest",
    "CustomerDetails",
    "TenantInfoResponse",
    "BookingInviteRequest",
    "CustomerCreate",
    "CustomerResponse",
    "CustomerUpdate",
    "ServiceCreate",
    "ServiceResponse",
    "ServiceUpdate",
    "TenantCreate",
    "TenantResponse",
]
