"""
Pydantic schemas for services
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    duration_minutes: int = Field(default=60, gt=0, le=24 * 60)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    is_active: Optional[bool] = None


class ServiceResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_minutes: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
