from detailbook.models.tenant import Tenant, SubscriptionStatus
from detailbook.models.customer import Customer
from detailbook.models.service import Service
from detailbook.models.appointment import (
    Appointment, AppointmentStatus, PaymentStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
)
from detailbook.models.notification_log import NotificationLog, NotificationKind, NotificationStatus
