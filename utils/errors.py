import enum


class ErrorCode(enum.IntEnum):
    SUCCESS = 1000
    INVALID_REQUEST = 1001
    UNAUTHENTICATED = 1002
    FORBIDDEN = 1003

    SERVICE_NOT_FOUND = 2001
    BOOKING_NOT_FOUND = 2002
    INVALID_BOOKING_STATUS = 2003
    ACCOUNT_NOT_ACTIVE = 2004
    BOOKING_NOT_CANCELLABLE = 2005
    RATING_ALREADY_EXISTS = 2006
    BOOKING_NOT_RATEABLE = 2007
    USER_NOT_FOUND = 2008
    EMAIL_ALREADY_REGISTERED = 2009

    @property
    def message(self) -> str:
        return _MESSAGES.get(self, self.name.replace("_", " ").capitalize())


_MESSAGES = {
    ErrorCode.INVALID_REQUEST: "Invalid request",
    ErrorCode.UNAUTHENTICATED: "Authentication required",
    ErrorCode.FORBIDDEN: "Forbidden",
    ErrorCode.SERVICE_NOT_FOUND: "Service not found",
    ErrorCode.BOOKING_NOT_FOUND: "Booking not found",
    ErrorCode.INVALID_BOOKING_STATUS: "Booking status does not allow this action",
    ErrorCode.ACCOUNT_NOT_ACTIVE: "Account is not active",
    ErrorCode.BOOKING_NOT_CANCELLABLE: (
        "Only pending bookings can be cancelled. "
        "Accepted or completed bookings cannot be cancelled."
    ),
    ErrorCode.RATING_ALREADY_EXISTS: "Booking has already been rated",
    ErrorCode.BOOKING_NOT_RATEABLE: "Only completed bookings can be rated",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.EMAIL_ALREADY_REGISTERED: "Email already registered",
}


class BusinessError(Exception):
    """A request that is well-formed but rejected by a business rule.

    Reported to the client as a normal response carrying ``code``.
    """

    code = ErrorCode.INVALID_REQUEST

    def __init__(self, code=None, message=None):
        if code is not None:
            self.code = code
        self.message = message or self.code.message
        super().__init__(self.message)


class NotFound(BusinessError):
    pass


class InvalidState(BusinessError):
    pass


class AccessDenied(Exception):
    """The acting user has no standing over the target entity."""

    def __init__(self, message="Forbidden"):
        self.message = message
        super().__init__(message)


class InvalidRequest(Exception):
    """Malformed input, rejected before any business rule runs."""

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)
