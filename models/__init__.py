from .db import db
from .user import User, Role
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .booking import Booking, BookingStatus
from .rating import Rating
