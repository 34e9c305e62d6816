import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import Role
from routes import health_bp, auth_bp, services_bp, bookings_bp, admin_bp
from security.csrf import init_csrf
from utils.auth_context import load_current_user, resolve_user
from utils.errors import AccessDenied, BusinessError, ErrorCode, InvalidRequest
from utils.responses import rejected


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    register_error_handlers(app)

    @app.before_request
    def _load_user():
        load_current_user()

    # Exempt auth bootstrap endpoints
    init_csrf(app, exempt_paths={"/auth/login", "/auth/register", "/health"})

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_error_handlers(app):
    # Business rejections are normal responses; clients branch on "code".
    @app.errorhandler(BusinessError)
    def _business_error(e):
        return rejected(e.code, e.message, status=200)

    @app.errorhandler(AccessDenied)
    def _access_denied(e):
        return rejected(ErrorCode.FORBIDDEN, e.message, status=403)

    @app.errorhandler(InvalidRequest)
    def _invalid_request(e):
        extra = {"details": e.details} if e.details else {}
        return rejected(ErrorCode.INVALID_REQUEST, e.message, status=400, **extra)

#-------------------------

def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables without running migrations (local development)."""
        db.create_all()
        print("Database tables created")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = resolve_user(email)
        if not user:
            print("User not found")
            return

        if user.role != Role.ADMIN:
            user.role = Role.ADMIN
            user.is_active = True
            db.session.commit()

        print(f"{user.email} promoted to ADMIN")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
