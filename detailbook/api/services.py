"""
Service catalog API endpoints for tenant operators
"""

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
from typing import List
from datetime import datetime
import structlog
import uuid

from detailbook.core.database import get_session
from detailbook.core.dependencies import get_tenant_id
from detailbook.core.exceptions import ForbiddenError, NotFoundError, StorageError
from detailbook.models.service import Service
from detailbook.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from detailbook.services.tenant_resolver import TenantResolver

logger = structlog.get_logger(__name__)
router = APIRouter()


def _save(session: Session, service: Service, action: str) -> Service:
    try:
        session.add(service)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to {action} service: {e}")
        raise StorageError(f"Failed to {action} service")
    session.refresh(service)
    return service


def _load_owned(session: Session, service_id: uuid.UUID, tenant_id: uuid.UUID) -> Service:
    service = session.get(Service, service_id)
    if not service:
        raise NotFoundError("Service not found")
    if not TenantResolver(session).authorize(tenant_id, service.tenant_id):
        logger.warning(f"Tenant {tenant_id} denied access to service {service_id}")
        raise ForbiddenError("Forbidden")
    return service


@router.get("/", response_model=List[ServiceResponse])
def list_services(
    include_inactive: bool = False,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    session: Session = Depends(get_session)
):
    """List the caller's services"""
    query = select(Service).where(Service.tenant_id == tenant_id)
    if not include_inactive:
        query = query.where(Service.is_active == True)  # noqa: E712
    return session.exec(query.order_by(Service.name)).all()


@router.post("/", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    service_in: ServiceCreate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    session: Session = Depends(get_session)
):
    service = Service(tenant_id=tenant_id, **service_in.model_dump())
    service = _save(session, service, "create")
    logger.info(f"Service created: {service.id} for tenant {tenant_id}")
    return service


@router.patch("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: uuid.UUID,
    service_update: ServiceUpdate,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    session: Session = Depends(get_session)
):
    """Update a service; deactivating hides it from the booking page"""
    service = _load_owned(session, service_id, tenant_id)

    for key, value in service_update.model_dump(exclude_unset=True).items():
        setattr(service, key, value)

    service.updated_at = datetime.utcnow()
    service = _save(session, service, "update")
    logger.info(f"Service updated: {service_id}")
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    session: Session = Depends(get_session)
):
    """Retire a service; past appointments keep their own service name and amount"""
    service = _load_owned(session, service_id, tenant_id)
    if service.is_active:
        service.is_active = False
        service.updated_at = datetime.utcnow()
        _save(session, service, "delete")
        logger.info(f"Service deactivated: {service_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
