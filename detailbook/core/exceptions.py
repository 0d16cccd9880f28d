"""
Domain errors raised by the booking engine

Every error carries the HTTP status the API layer answers with and a
specific, user-facing detail message.
"""


class BookingError(Exception):
    """Base class for booking engine errors"""

    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(BookingError):
    """Tenant, customer, appointment or service is absent"""

    status_code = 404


class ForbiddenError(BookingError):
    """Caller's tenant does not own the resource"""

    status_code = 403


class SubscriptionRequiredError(BookingError):
    """Tenant's trial or subscription has lapsed"""

    status_code = 402


class ConflictError(BookingError):
    """Unique resource already exists"""

    status_code = 409


class SlotConflictError(ConflictError):
    """Slot is already held by an active appointment"""


class BookingValidationError(BookingError):
    """Malformed or disallowed input"""

    status_code = 400


class InvalidTransitionError(BookingValidationError, ValueError):
    """Status transition not permitted from the current state"""


class StorageError(BookingError):
    """Persistence layer failure"""

    status_code = 500
