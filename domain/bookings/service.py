"""Booking service - lifecycle rules for bookings.

Every operation takes the acting user explicitly. Guards run in a fixed
order per operation because the order decides which error a request gets,
e.g. an inactive employee accepting a missing booking is told the account
is inactive, not that the booking is missing.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, BookingStatus
from models.rating import Rating
from security.rbac import is_allowed
from utils.errors import AccessDenied, BusinessError, ErrorCode, InvalidState, NotFound
from .repository import BookingRepository
from .visibility import visibility_clause


@dataclass
class BookingPage:
    items: list = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_items: int = 0

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_items / self.page_size)

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "page": self.page,
            "page_size": self.page_size,
            "item_count": self.item_count,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
        }


def _ensure_role(actor, operation: str) -> None:
    if not is_allowed(actor.role, operation):
        raise AccessDenied("Role not allowed for this operation")


def _ensure_active(actor) -> None:
    if not actor.is_active:
        raise BusinessError(ErrorCode.ACCOUNT_NOT_ACTIVE)


def _get_booking(booking_id: int) -> Booking:
    booking = BookingRepository.get(booking_id)
    if booking is None:
        raise NotFound(ErrorCode.BOOKING_NOT_FOUND)
    return booking


def order_booking(actor, service_id: int, address: str, hire_at, note: Optional[str] = None) -> Booking:
    _ensure_role(actor, "booking.order")

    service = BookingRepository.get_service(service_id)
    if service is None:
        raise NotFound(ErrorCode.SERVICE_NOT_FOUND)

    booking = Booking(
        service_id=service.id,
        customer_id=actor.id,
        employee_id=None,
        address=address,
        hire_at=hire_at,
        note=note,
        status=BookingStatus.PENDING,
    )
    return BookingRepository.add(booking)


def accept_booking(actor, booking_id: int) -> Booking:
    _ensure_role(actor, "booking.accept")
    _ensure_active(actor)

    booking = _get_booking(booking_id)
    if booking.status != BookingStatus.PENDING:
        raise InvalidState(ErrorCode.INVALID_BOOKING_STATUS)

    # another employee may have accepted since the read above
    accepted = BookingRepository.transition(
        booking.id,
        expected=BookingStatus.PENDING,
        new_status=BookingStatus.ACCEPTED,
        employee_id=actor.id,
    )
    if not accepted:
        raise InvalidState(ErrorCode.INVALID_BOOKING_STATUS)
    return booking


def finish_booking(actor, booking_id: int) -> Booking:
    _ensure_role(actor, "booking.finish")
    _ensure_active(actor)

    booking = _get_booking(booking_id)
    # unassigned bookings (pending, cancelled) fall through to the status check
    if booking.employee_id is not None and booking.employee_id != actor.id:
        raise AccessDenied("Booking is not assigned to this employee")
    if booking.status != BookingStatus.ACCEPTED:
        raise InvalidState(ErrorCode.INVALID_BOOKING_STATUS)

    finished = BookingRepository.transition(
        booking.id,
        expected=BookingStatus.ACCEPTED,
        new_status=BookingStatus.COMPLETED,
        assignee_id=actor.id,
    )
    if not finished:
        raise InvalidState(ErrorCode.INVALID_BOOKING_STATUS)
    return booking


def cancel_booking(actor, booking_id: int) -> Booking:
    _ensure_role(actor, "booking.cancel")

    booking = _get_booking(booking_id)
    if booking.customer_id != actor.id:
        raise AccessDenied("Booking belongs to another customer")
    if booking.status != BookingStatus.PENDING:
        raise InvalidState(ErrorCode.BOOKING_NOT_CANCELLABLE)

    cancelled = BookingRepository.transition(
        booking.id,
        expected=BookingStatus.PENDING,
        new_status=BookingStatus.CANCELLED,
    )
    if not cancelled:
        raise InvalidState(ErrorCode.BOOKING_NOT_CANCELLABLE)
    return booking


def rate_booking(actor, booking_id: int, score: int, comment: Optional[str] = None) -> Rating:
    _ensure_role(actor, "booking.rate")

    booking = _get_booking(booking_id)
    if booking.customer_id != actor.id:
        raise AccessDenied("Booking belongs to another customer")
    if booking.status != BookingStatus.COMPLETED:
        raise InvalidState(ErrorCode.BOOKING_NOT_RATEABLE)
    if BookingRepository.get_rating(booking.id) is not None:
        raise InvalidState(ErrorCode.RATING_ALREADY_EXISTS)

    try:
        return BookingRepository.add_rating(
            Rating(booking_id=booking.id, customer_id=actor.id, score=score, comment=comment)
        )
    except IntegrityError:
        # uq_rating_booking_once, a concurrent rating got there first
        db.session.rollback()
        raise InvalidState(ErrorCode.RATING_ALREADY_EXISTS)


def serialize_booking(b: Booking, has_rated: bool = False) -> dict:
    return {
        "id": b.id,
        "customer_id": b.customer_id,
        "customer_name": b.customer.full_name if b.customer else None,
        "service_id": b.service_id,
        "service_name": b.service.name if b.service else None,
        "employee_id": b.employee_id,
        "employee_name": b.employee.full_name if b.employee else None,
        "address": b.address,
        "hire_at": b.hire_at.isoformat(),
        "note": b.note,
        "price": b.service.price if b.service else None,
        "status": b.status.value,
        "has_rated": has_rated,
        "created_at": b.created_at.isoformat(),
    }


def list_bookings(
    actor,
    status: Optional[BookingStatus] = None,
    page_number: int = 1,
    page_size: int = 10,
) -> BookingPage:
    _ensure_role(actor, "booking.list")

    page_number = max(1, page_number)
    page_size = max(1, page_size)

    criteria = [visibility_clause(actor)]
    if status is not None:
        criteria.append(Booking.status == status)

    rows, total = BookingRepository.page(criteria, page_number, page_size)

    # rating lookup only applies to completed bookings
    completed_ids = [b.id for b in rows if b.status == BookingStatus.COMPLETED]
    rated = BookingRepository.rated_booking_ids(completed_ids)

    return BookingPage(
        items=[serialize_booking(b, has_rated=(b.id in rated)) for b in rows],
        page=page_number,
        page_size=page_size,
        total_items=total,
    )
