"""
Service model - a tenant's bookable offering
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid


class Service(SQLModel, table=True):
    """Tenant-scoped service with price and duration"""

    __tablename__ = "services"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation"
    )
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    duration_minutes: int = Field(default=60)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
