from datetime import datetime, timezone

from flask import Blueprint, request, g

from domain.bookings import (
    accept_booking,
    cancel_booking,
    finish_booking,
    list_bookings,
    order_booking,
    rate_booking,
)
from models.booking import BookingStatus
from models.db import utcnow
from security.rbac import require_operation
from utils.audit import audited
from utils.errors import InvalidRequest
from utils.pagination import page_args
from utils.parsing import parse_int
from utils.responses import ok

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/v1/bookings")


def _parse_iso(dt_str):
    # Expect ISO format like "2026-01-20T18:00:00" or "2026-01-20T11:00:00Z"
    if not isinstance(dt_str, str) or not dt_str.strip():
        raise InvalidRequest("hire_at is required")
    try:
        dt = datetime.fromisoformat(dt_str.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidRequest("Invalid datetime format. Use ISO e.g. 2026-01-20T18:00:00")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


# ---------- CUSTOMER: order a service ----------
@bookings_bp.post("")
@require_operation("booking.order")
def create_booking():
    data = request.get_json(silent=True) or {}

    if data.get("service_id") is None:
        raise InvalidRequest("service_id is required")
    service_id = parse_int(data.get("service_id"), "service_id")

    address = data.get("address")
    if not isinstance(address, str) or not address.strip():
        raise InvalidRequest("address is required")
    address = address.strip()
    if len(address) > 255:
        raise InvalidRequest("address is too long")

    hire_at = _parse_iso(data.get("hire_at"))
    if hire_at <= utcnow():
        raise InvalidRequest("hire_at must be in the future")

    note = data.get("note")
    if note is not None and not isinstance(note, str):
        raise InvalidRequest("note must be a string")
    note = (note or "").strip() or None

    booking = audited("BOOKING_ORDER", g.user.id, "service", service_id,
                      order_booking, g.user, service_id, address, hire_at, note)
    return ok({"id": booking.id, "status": booking.status.value, "message": "Order booking successfully"})


# ---------- EMPLOYEE: accept / finish ----------
@bookings_bp.patch("/<int:booking_id>/accept")
@require_operation("booking.accept")
def accept(booking_id: int):
    booking = audited("BOOKING_ACCEPT", g.user.id, "booking", booking_id, accept_booking, g.user, booking_id)
    return ok({"id": booking.id, "status": booking.status.value, "message": "Accept booking successfully"})


@bookings_bp.patch("/<int:booking_id>/finish")
@require_operation("booking.finish")
def finish(booking_id: int):
    booking = audited("BOOKING_FINISH", g.user.id, "booking", booking_id, finish_booking, g.user, booking_id)
    return ok({"id": booking.id, "status": booking.status.value, "message": "Finish booking successfully"})


# ---------- CUSTOMER: cancel ----------
@bookings_bp.patch("/<int:booking_id>/cancel")
@require_operation("booking.cancel")
def cancel(booking_id: int):
    booking = audited("BOOKING_CANCEL", g.user.id, "booking", booking_id, cancel_booking, g.user, booking_id)
    return ok({"id": booking.id, "status": booking.status.value, "message": "Cancel booking successfully"})


# ---------- CUSTOMER: rate a completed booking ----------
@bookings_bp.post("/<int:booking_id>/rating")
@require_operation("booking.rate")
def rate(booking_id: int):
    data = request.get_json(silent=True) or {}
    score = parse_int(data.get("score"), "score")
    if not 1 <= score <= 5:
        raise InvalidRequest("score must be between 1 and 5")

    comment = data.get("comment")
    if comment is not None and not isinstance(comment, str):
        raise InvalidRequest("comment must be a string")
    comment = (comment or "").strip() or None

    rating = audited("BOOKING_RATE", g.user.id, "booking", booking_id, rate_booking, g.user, booking_id, score, comment)
    return ok({"id": rating.id, "booking_id": rating.booking_id, "score": rating.score}, status=201)


# ---------- ANY ROLE: list visible bookings ----------
@bookings_bp.get("")
@require_operation("booking.list")
def list_visible_bookings():
    status = request.args.get("status")
    if status:
        try:
            status = BookingStatus(status.strip().upper())
        except ValueError:
            raise InvalidRequest("Invalid status", details=[s.value for s in BookingStatus])
    else:
        status = None

    page_number, page_size = page_args()
    page = list_bookings(g.user, status=status, page_number=page_number, page_size=page_size)
    return ok(page.to_dict())
