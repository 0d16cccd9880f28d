"""
Tenant API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import structlog

from detailbook.core.config import get_settings
from detailbook.core.database import get_session
from detailbook.core.exceptions import BookingValidationError, ConflictError, StorageError
from detailbook.core.validators import clean_optional, validate_email, validate_phone
from detailbook.models.tenant import SubscriptionStatus, Tenant
from detailbook.schemas.tenant import TenantCreate, TenantResponse
from detailbook.services.access_gate import AccessGate
from detailbook.services.tenant_resolver import TenantResolver, slugify, validate_slug

logger = structlog.get_logger(__name__)
router = APIRouter()


def _to_response(session: Session, tenant: Tenant) -> TenantResponse:
    info = AccessGate(session).get_status(tenant.id)
    response = TenantResponse.model_validate(tenant)
    response.subscription_status = info.status
    response.days_left = info.days_left
    return response


@router.post("/", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
    tenant_in: TenantCreate,
    session: Session = Depends(get_session)
):
    """Create a tenant on a trial, deriving a free slug when none is given"""
    settings = get_settings()
    resolver = TenantResolver(session)

    try:
        ZoneInfo(tenant_in.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise BookingValidationError(f"Unknown timezone: {tenant_in.timezone}")

    if tenant_in.slug:
        slug = validate_slug(tenant_in.slug)
        if resolver.unique_slug(slug) != slug:
            raise ConflictError("Slug is already taken")
    else:
        base = slugify(tenant_in.business_name) or "detailer"
        slug = resolver.unique_slug(base)

    now = datetime.utcnow()
    tenant = Tenant(
        slug=slug,
        business_name=tenant_in.business_name.strip(),
        email=validate_email(tenant_in.email),
        phone=validate_phone(tenant_in.phone) if clean_optional(tenant_in.phone) else None,
        timezone=tenant_in.timezone,
        subscription_status=SubscriptionStatus.TRIAL,
        trial_ends_at=now + timedelta(days=settings.TRIAL_DAYS),
    )

    try:
        session.add(tenant)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Tenant slug {slug} taken concurrently: {e}")
        raise ConflictError("Slug is already taken")
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to create tenant: {e}")
        raise StorageError("Failed to create tenant")

    session.refresh(tenant)
    logger.info(f"Tenant created: {tenant.id} ({tenant.slug})")
    return _to_response(session, tenant)


@router.get("/{tenant_ref}", response_model=TenantResponse)
def get_tenant(
    tenant_ref: str,
    session: Session = Depends(get_session)
):
    """Get tenant by ID or slug"""
    tenant = TenantResolver(session).get_tenant(tenant_ref)
    return _to_response(session, tenant)
