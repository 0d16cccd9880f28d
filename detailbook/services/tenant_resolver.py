"""
Tenant identifier resolution

A tenant is referenced either by its internal UUID or by its public slug.
``normalize_tenant_ref`` is the one place that tells the two apart; every
trust boundary goes through it.
"""

from typing import Optional, Union
import re
import uuid

from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
import structlog

from detailbook.core.exceptions import BookingValidationError, NotFoundError, StorageError
from detailbook.models.tenant import Tenant

logger = structlog.get_logger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SLUG_BASE_MAX_LENGTH = 30
SLUG_MAX_LENGTH = 40

TenantRef = Union[str, uuid.UUID]


def is_internal_id(ref: TenantRef) -> bool:
    """Structural check only, never touches the database"""
    if isinstance(ref, uuid.UUID):
        return True
    return bool(UUID_PATTERN.match(ref.strip()))


def _lookup_slug(session: Session, slug: str) -> Optional[Tenant]:
    try:
        return session.exec(
            select(Tenant).where(
                Tenant.slug == slug.strip().lower(),
                Tenant.is_active == True  # noqa: E712
            )
        ).first()
    except SQLAlchemyError as e:
        logger.error(f"Failed to look up tenant slug {slug}: {e}")
        raise StorageError("Failed to look up tenant")


def normalize_tenant_ref(session: Session, ref: TenantRef) -> uuid.UUID:
    """Map a tenant reference (internal id or slug) to the internal id"""
    if ref is None or (isinstance(ref, str) and not ref.strip()):
        raise NotFoundError("Tenant not found")

    if is_internal_id(ref):
        return ref if isinstance(ref, uuid.UUID) else uuid.UUID(ref.strip())

    tenant = _lookup_slug(session, ref)
    if tenant is None:
        raise NotFoundError("Tenant not found or inactive")
    return tenant.id


def slugify(business_name: str) -> str:
    """Derive a slug from a business name"""
    slug = re.sub(r"[^a-z0-9\s-]", "", business_name.lower())
    slug = re.sub(r"[\s-]+", "-", slug.strip())
    return slug[:SLUG_BASE_MAX_LENGTH].strip("-")


def validate_slug(slug: str) -> str:
    slug = slug.strip().lower()
    if not slug or len(slug) > SLUG_MAX_LENGTH or not SLUG_PATTERN.match(slug):
        raise BookingValidationError(
            "Slug must be lowercase letters, digits and single hyphens"
        )
    if is_internal_id(slug):
        raise BookingValidationError("Slug cannot look like an internal identifier")
    return slug


class TenantResolver:
    """Resolves tenant references and checks tenant ownership"""

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, ref: TenantRef) -> uuid.UUID:
        return normalize_tenant_ref(self.session, ref)

    def get_tenant(self, ref: TenantRef) -> Tenant:
        """Load an active tenant by either form, one lookup"""
        if is_internal_id(ref):
            try:
                tenant = self.session.get(Tenant, normalize_tenant_ref(self.session, ref))
            except SQLAlchemyError as e:
                logger.error(f"Failed to load tenant {ref}: {e}")
                raise StorageError("Failed to look up tenant")
        else:
            tenant = _lookup_slug(self.session, ref)

        if tenant is None or not tenant.is_active:
            raise NotFoundError("Tenant not found or inactive")
        return tenant

    def slug_for(self, tenant_id: TenantRef) -> str:
        return self.get_tenant(tenant_id).slug

    def authorize(self, claimed_id: TenantRef, tenant_ref: TenantRef) -> bool:
        """True when the caller's tenant is the one a resource refers to"""
        try:
            claimed = normalize_tenant_ref(self.session, claimed_id)
            owner = normalize_tenant_ref(self.session, tenant_ref)
        except NotFoundError:
            logger.warning(f"Ownership check failed to resolve {claimed_id} / {tenant_ref}")
            return False

        return claimed == owner

    def unique_slug(self, base: str) -> str:
        """Return ``base`` or the first free ``base-N``"""
        base = validate_slug(base)
        candidate = base
        suffix = 2
        while self.session.exec(select(Tenant.id).where(Tenant.slug == candidate)).first():
            candidate = f"{base}-{suffix}"
            suffix += 1
        return validate_slug(candidate)
