import enum
from models.db import db, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# statuses in which a booking carries an employee
ASSIGNED_STATUSES = frozenset({BookingStatus.ACCEPTED, BookingStatus.COMPLETED})


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    address = db.Column(db.String(255), nullable=False)
    hire_at = db.Column(db.DateTime, nullable=False)
    note = db.Column(db.Text, nullable=True)

    status = db.Column(
        db.Enum(BookingStatus, native_enum=False, length=20),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    service = db.relationship("Service", lazy="joined")
    customer = db.relationship("User", foreign_keys=[customer_id], lazy="joined")
    employee = db.relationship("User", foreign_keys=[employee_id], lazy="joined")
