"""
Customer model - shared across tenants, matched by contact details
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
import uuid


class Customer(SQLModel, table=True):
    """A person who booked with at least one tenant"""

    __tablename__ = "customers"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=200)
    phone: str = Field(index=True, max_length=50)
    email: Optional[str] = Field(default=None, index=True, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def name_matches(self, name: str) -> bool:
        """Names compare case-insensitively after trimming"""
        return self.name.strip().lower() == name.strip().lower()
