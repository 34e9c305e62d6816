"""Booking repository - persistence for bookings and their ratings"""

from typing import Optional

import sqlalchemy as sa

from models import db
from models.db import get_row
from models.booking import Booking, BookingStatus
from models.rating import Rating
from models.service import Service


class BookingRepository:
    """Database operations for bookings.

    Every status change goes through ``transition``, a single conditional
    UPDATE, so a check-then-write race between two requests resolves to
    exactly one winner.
    """

    @staticmethod
    def get_service(service_id: int) -> Optional[Service]:
        return get_row(Service, service_id)

    @staticmethod
    def get(booking_id: int) -> Optional[Booking]:
        return get_row(Booking, booking_id)

    @staticmethod
    def add(booking: Booking) -> Booking:
        db.session.add(booking)
        db.session.commit()
        return booking

    @staticmethod
    def transition(
        booking_id: int,
        expected: BookingStatus,
        new_status: BookingStatus,
        assignee_id: Optional[int] = None,
        **values,
    ) -> bool:
        """Move ``booking_id`` from ``expected`` to ``new_status``.

        Returns False, leaving the row untouched, when the stored status no
        longer equals ``expected`` (or the stored employee is not
        ``assignee_id``, when given).
        """
        stmt = (
            sa.update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected)
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if assignee_id is not None:
            stmt = stmt.where(Booking.employee_id == assignee_id)

        result = db.session.execute(stmt)
        if result.rowcount != 1:
            db.session.rollback()
            return False

        db.session.commit()
        return True

    @staticmethod
    def page(criteria, page_number: int, page_size: int) -> tuple[list[Booking], int]:
        """Return one page of bookings matching ``criteria`` and the total match count."""
        q = Booking.query.filter(*criteria)
        total = q.count()
        rows = (
            q.order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page_number - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    @staticmethod
    def rated_booking_ids(booking_ids: list[int]) -> set[int]:
        if not booking_ids:
            return set()
        rows = (
            db.session.query(Rating.booking_id)
            .filter(Rating.booking_id.in_(booking_ids))
            .all()
        )
        return {r.booking_id for r in rows}

    @staticmethod
    def get_rating(booking_id: int) -> Optional[Rating]:
        return Rating.query.filter_by(booking_id=booking_id).first()

    @staticmethod
    def add_rating(rating: Rating) -> Rating:
        db.session.add(rating)
        db.session.commit()
        return rating
