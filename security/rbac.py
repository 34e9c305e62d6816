from functools import wraps
from flask import g, jsonify

from models.user import Role
from utils.errors import ErrorCode

# Which roles may invoke which operation. Ownership and assignment checks
# happen later, against the booking itself.
OPERATION_ROLES = {
    "booking.order": frozenset({Role.CUSTOMER}),
    "booking.accept": frozenset({Role.EMPLOYEE}),
    "booking.finish": frozenset({Role.EMPLOYEE}),
    "booking.cancel": frozenset({Role.CUSTOMER}),
    "booking.list": frozenset({Role.CUSTOMER, Role.EMPLOYEE, Role.ADMIN}),
    "booking.rate": frozenset({Role.CUSTOMER}),
    "service.manage": frozenset({Role.ADMIN}),
    "user.manage": frozenset({Role.ADMIN}),
}

def is_allowed(role: Role, operation: str) -> bool:
    allowed = OPERATION_ROLES.get(operation)
    if allowed is None:
        raise KeyError(f"Unknown operation: {operation}")
    return role in allowed

def require_operation(operation: str):
    """
    Usage: @require_operation("booking.accept")
    """
    # fail at import time on a typo rather than on first request
    if operation not in OPERATION_ROLES:
        raise KeyError(f"Unknown operation: {operation}")

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(code=int(ErrorCode.UNAUTHENTICATED), message="Authentication required"), 401

            if not is_allowed(user.role, operation):
                return jsonify(code=int(ErrorCode.FORBIDDEN), message="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
