from .health import health_bp
from .auth import auth_bp
from .services import services_bp
from .bookings import bookings_bp
from .admin import admin_bp
