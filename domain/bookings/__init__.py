"""Booking lifecycle: ordering, acceptance, completion, cancellation and listing."""

from .service import (
    BookingPage,
    accept_booking,
    cancel_booking,
    finish_booking,
    list_bookings,
    order_booking,
    rate_booking,
)
from .visibility import can_view, visibility_clause
