"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class UnauthorizedActionException(ForbiddenException):
    """The acting user's role or ownership does not allow the requested action."""

    def __init__(self, message: str = "Action not allowed for this user"):
        """Initialize with 403 status code."""
        super().__init__(message)


class InvalidStateTransitionException(ConflictException):
    """The appointment's current status does not permit the requested transition."""

    def __init__(self, current_status: str, target_status: str, message: str | None = None):
        """Initialize with the offending statuses and a 409 status code."""
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message
            or f"Cannot move appointment from {current_status} to {target_status}"
        )


class NotificationDeliveryFailure(AppException):
    """A notification channel (store, template, email) failed for one recipient.

    Raised inside delivery code only; the notification router catches it per
    recipient so it never reaches the caller of a workflow transition.
    """

    def __init__(self, message: str = "Notification delivery failed", channel: str = "unknown"):
        """Initialize with the failing channel name."""
        self.channel = channel
        super().__init__(message, status_code=500)
