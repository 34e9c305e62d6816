from types import SimpleNamespace

import pytest

from conftest import fetch
from domain.bookings import (
    accept_booking,
    cancel_booking,
    finish_booking,
    list_bookings,
    order_booking,
    rate_booking,
)
from domain.bookings.repository import BookingRepository
from models import db
from models.booking import ASSIGNED_STATUSES, Booking, BookingStatus
from models.rating import Rating
from models.user import Role
from utils.errors import AccessDenied, BusinessError, ErrorCode


def assert_invariant():
    for b in Booking.query.all():
        assert (b.employee_id is not None) == (b.status in ASSIGNED_STATUSES), b.id


def rejection_code(fn, *args):
    with pytest.raises(BusinessError) as exc:
        fn(*args)
    return exc.value.code


# ---------- order ----------

def test_order_creates_pending_booking_without_employee(customer, service, future):
    booking = order_booking(customer, 42, "12 Le Loi", future)

    stored = fetch(Booking, booking.id)
    assert stored.status == BookingStatus.PENDING
    assert stored.employee_id is None
    assert stored.customer_id == customer.id
    assert stored.service.price == 500000
    assert stored.address == "12 Le Loi"
    assert_invariant()


def test_order_unknown_service_is_reported_not_raised_as_fault(customer, future):
    assert rejection_code(order_booking, customer, 999, "12 Le Loi", future) == ErrorCode.SERVICE_NOT_FOUND
    assert Booking.query.count() == 0


def test_order_is_customer_only(employee, service, future):
    with pytest.raises(AccessDenied):
        order_booking(employee, service.id, "12 Le Loi", future)


# ---------- accept ----------

def test_accept_assigns_employee(customer, employee, make_booking):
    b = make_booking(customer)
    accept_booking(employee, b.id)

    stored = fetch(Booking, b.id)
    assert stored.status == BookingStatus.ACCEPTED
    assert stored.employee_id == employee.id
    assert_invariant()


def test_second_accept_is_rejected_not_overwritten(customer, employee, other_employee, make_booking):
    b = make_booking(customer)
    accept_booking(employee, b.id)

    assert rejection_code(accept_booking, other_employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS
    assert fetch(Booking, b.id).employee_id == employee.id


def test_inactive_employee_checked_before_booking_lookup(make_user):
    idle = make_user("idle@example.com", role=Role.EMPLOYEE, is_active=False)
    assert rejection_code(accept_booking, idle, 12345) == ErrorCode.ACCOUNT_NOT_ACTIVE


def test_accept_missing_booking(employee):
    assert rejection_code(accept_booking, employee, 12345) == ErrorCode.BOOKING_NOT_FOUND


@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.ACCEPTED])
def test_accept_requires_pending(customer, employee, other_employee, make_booking, status):
    assignee = other_employee if status in ASSIGNED_STATUSES else None
    b = make_booking(customer, status, assignee)
    assert rejection_code(accept_booking, employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS
    assert fetch(Booking, b.id).status == status


def test_accept_race_loser_gets_wrong_status(customer, employee, other_employee, make_booking, monkeypatch):
    b = make_booking(customer)
    accept_booking(employee, b.id)

    # the loser read the row while it was still pending
    stale = SimpleNamespace(id=b.id, status=BookingStatus.PENDING, employee_id=None, customer_id=customer.id)
    monkeypatch.setattr(BookingRepository, "get", staticmethod(lambda booking_id: stale))

    assert rejection_code(accept_booking, other_employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS

    stored = fetch(Booking, b.id)
    assert stored.status == BookingStatus.ACCEPTED
    assert stored.employee_id == employee.id


# ---------- finish ----------

def test_finish_by_assigned_employee(customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    finish_booking(employee, b.id)

    stored = fetch(Booking, b.id)
    assert stored.status == BookingStatus.COMPLETED
    assert stored.employee_id == employee.id
    assert_invariant()


def test_finish_by_other_employee_is_denied(customer, employee, other_employee, make_booking):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    with pytest.raises(AccessDenied):
        finish_booking(other_employee, b.id)
    assert fetch(Booking, b.id).status == BookingStatus.ACCEPTED


def test_finish_before_accept_is_wrong_status(customer, employee, make_booking):
    b = make_booking(customer)
    assert rejection_code(finish_booking, employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS
    assert fetch(Booking, b.id).status == BookingStatus.PENDING


def test_finish_twice_is_wrong_status(customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    finish_booking(employee, b.id)
    assert rejection_code(finish_booking, employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS


def test_finish_checks_active_then_existence(make_user, employee):
    idle = make_user("idle@example.com", role=Role.EMPLOYEE, is_active=False)
    assert rejection_code(finish_booking, idle, 777) == ErrorCode.ACCOUNT_NOT_ACTIVE
    assert rejection_code(finish_booking, employee, 777) == ErrorCode.BOOKING_NOT_FOUND


def test_finish_race_loser_gets_wrong_status(customer, employee, make_booking, monkeypatch):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    finish_booking(employee, b.id)

    # a second finish request read the row before the first one committed
    stale = SimpleNamespace(id=b.id, status=BookingStatus.ACCEPTED, employee_id=employee.id, customer_id=customer.id)
    monkeypatch.setattr(BookingRepository, "get", staticmethod(lambda booking_id: stale))

    assert rejection_code(finish_booking, employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS
    assert fetch(Booking, b.id).status == BookingStatus.COMPLETED


def test_deactivated_assignee_cannot_finish(customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    employee.is_active = False
    db.session.commit()

    assert rejection_code(finish_booking, employee, b.id) == ErrorCode.ACCOUNT_NOT_ACTIVE
    assert fetch(Booking, b.id).status == BookingStatus.ACCEPTED


# ---------- cancel ----------

def test_cancel_pending_booking(customer, make_booking):
    b = make_booking(customer)
    cancel_booking(customer, b.id)

    stored = fetch(Booking, b.id)
    assert stored.status == BookingStatus.CANCELLED
    assert stored.employee_id is None
    assert_invariant()


def test_cancel_someone_elses_booking_is_denied(customer, other_customer, make_booking):
    b = make_booking(customer)
    with pytest.raises(AccessDenied):
        cancel_booking(other_customer, b.id)
    assert fetch(Booking, b.id).status == BookingStatus.PENDING


def test_cancel_missing_booking(customer):
    assert rejection_code(cancel_booking, customer, 404) == ErrorCode.BOOKING_NOT_FOUND


@pytest.mark.parametrize("status", [BookingStatus.ACCEPTED, BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_cancel_requires_pending(customer, employee, make_booking, status):
    b = make_booking(customer, status, employee if status in ASSIGNED_STATUSES else None)
    assert rejection_code(cancel_booking, customer, b.id) == ErrorCode.BOOKING_NOT_CANCELLABLE
    assert fetch(Booking, b.id).status == status


def test_cancel_race_loser_gets_not_cancellable(customer, employee, make_booking, monkeypatch):
    b = make_booking(customer)
    accept_booking(employee, b.id)

    # the customer read the row while it was still pending
    stale = SimpleNamespace(id=b.id, status=BookingStatus.PENDING, employee_id=None, customer_id=customer.id)
    monkeypatch.setattr(BookingRepository, "get", staticmethod(lambda booking_id: stale))

    assert rejection_code(cancel_booking, customer, b.id) == ErrorCode.BOOKING_NOT_CANCELLABLE

    stored = fetch(Booking, b.id)
    assert stored.status == BookingStatus.ACCEPTED
    assert stored.employee_id == employee.id


def test_out_of_range_booking_id_is_not_found(customer, employee):
    assert rejection_code(accept_booking, employee, 2**63) == ErrorCode.BOOKING_NOT_FOUND
    assert rejection_code(cancel_booking, customer, 10**20) == ErrorCode.BOOKING_NOT_FOUND
    assert rejection_code(order_booking, customer, 10**20, "12 Le Loi", None) == ErrorCode.SERVICE_NOT_FOUND


def test_cancelled_booking_cannot_be_accepted(customer, employee, make_booking):
    b = make_booking(customer)
    cancel_booking(customer, b.id)
    assert rejection_code(accept_booking, employee, b.id) == ErrorCode.INVALID_BOOKING_STATUS
    assert_invariant()


# ---------- full scenario ----------

def test_order_accept_finish_rate(customer, employee, other_employee, service, future):
    booking = order_booking(customer, service.id, "12 Le Loi", future, "Unit is leaking")
    bid = booking.id

    accept_booking(employee, bid)
    assert rejection_code(accept_booking, other_employee, bid) == ErrorCode.INVALID_BOOKING_STATUS

    with pytest.raises(AccessDenied):
        finish_booking(other_employee, bid)
    assert fetch(Booking, bid).status == BookingStatus.ACCEPTED

    assert rejection_code(cancel_booking, customer, bid) == ErrorCode.BOOKING_NOT_CANCELLABLE

    finish_booking(employee, bid)
    assert fetch(Booking, bid).status == BookingStatus.COMPLETED

    page = list_bookings(customer)
    assert [item["has_rated"] for item in page.items] == [False]

    rate_booking(customer, bid, 5, "Quick and tidy")
    page = list_bookings(customer)
    assert [item["has_rated"] for item in page.items] == [True]
    assert_invariant()


# ---------- rating ----------

def test_rating_requires_completed_booking(customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.ACCEPTED, employee)
    assert rejection_code(rate_booking, customer, b.id, 4) == ErrorCode.BOOKING_NOT_RATEABLE


def test_rating_only_once(customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.COMPLETED, employee)
    rate_booking(customer, b.id, 4)
    assert rejection_code(rate_booking, customer, b.id, 5) == ErrorCode.RATING_ALREADY_EXISTS
    assert Rating.query.filter_by(booking_id=b.id).count() == 1


def test_rating_by_other_customer_is_denied(customer, other_customer, employee, make_booking):
    b = make_booking(customer, BookingStatus.COMPLETED, employee)
    with pytest.raises(AccessDenied):
        rate_booking(other_customer, b.id, 3)


# ---------- listing ----------

def test_has_rated_only_looked_up_for_completed(customer, employee, make_booking):
    accepted = make_booking(customer, BookingStatus.ACCEPTED, employee)
    # a stray rating on a non-completed booking does not count
    db.session.add(Rating(booking_id=accepted.id, customer_id=customer.id, score=1))
    db.session.commit()

    page = list_bookings(customer)
    assert page.items[0]["has_rated"] is False


def test_list_counts_visible_total_across_pages(customer, other_customer, employee, make_booking):
    for _ in range(5):
        make_booking(customer)
    for _ in range(3):
        make_booking(other_customer, BookingStatus.ACCEPTED, employee)

    first = list_bookings(customer, page_number=1, page_size=2)
    assert first.item_count == 2
    assert first.total_items == 5
    assert first.total_pages == 3

    last = list_bookings(customer, page_number=3, page_size=2)
    assert last.item_count == 1
    assert all(item["customer_id"] == customer.id for item in last.items)


def test_list_for_employee_and_status_filter(customer, employee, other_employee, make_booking):
    make_booking(customer)
    make_booking(customer)
    make_booking(customer, BookingStatus.ACCEPTED, employee)
    make_booking(customer, BookingStatus.ACCEPTED, other_employee)
    make_booking(customer, BookingStatus.CANCELLED)

    page = list_bookings(employee, page_size=50)
    assert page.total_items == 3

    accepted = list_bookings(employee, status=BookingStatus.ACCEPTED)
    assert [item["employee_id"] for item in accepted.items] == [employee.id]


def test_admin_lists_everything(customer, other_customer, admin, make_booking):
    make_booking(customer)
    make_booking(other_customer, BookingStatus.CANCELLED)
    assert list_bookings(admin).total_items == 2
