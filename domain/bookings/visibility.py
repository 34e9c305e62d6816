import sqlalchemy as sa

from models.booking import Booking, BookingStatus
from models.user import Role


def can_view(user, booking) -> bool:
    """Whether ``user`` may see ``booking`` in a listing.

    Admins see everything, customers see their own bookings, employees see
    the bookings assigned to them plus the open pool of pending requests.
    """
    if user.role == Role.ADMIN:
        return True
    if user.role == Role.CUSTOMER:
        return booking.customer_id == user.id
    if user.role == Role.EMPLOYEE:
        return booking.employee_id == user.id or booking.status == BookingStatus.PENDING
    return False


def visibility_clause(user):
    """SQL form of ``can_view``, applied before pagination."""
    if user.role == Role.ADMIN:
        return sa.true()
    if user.role == Role.CUSTOMER:
        return Booking.customer_id == user.id
    if user.role == Role.EMPLOYEE:
        return sa.or_(Booking.employee_id == user.id, Booking.status == BookingStatus.PENDING)
    return sa.false()
