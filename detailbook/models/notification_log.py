"""
Notification log - records every notification the lifecycle attempted
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class NotificationKind(str, Enum):
    CONFIRMATION = "confirmation"
    RESCHEDULE = "reschedule"
    CANCELLATION = "cancellation"
    REMINDER = "reminder"


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class NotificationLog(SQLModel, table=True):
    """Intended side effect of an appointment transition"""

    __tablename__ = "notification_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    # Not a foreign key: logs outlive purged appointments
    appointment_id: uuid.UUID = Field(index=True)

    kind: NotificationKind
    recipient: Optional[str] = Field(default=None, max_length=255)
    message_body: str = Field(max_length=2000)
    status: NotificationStatus
    provider_message_id: Optional[str] = Field(default=None, max_length=100)
    error_message: Optional[str] = Field(default=None, max_length=1000)

    created_at: datetime = Field(default_factory=datetime.utcnow)
