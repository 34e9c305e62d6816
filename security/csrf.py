"""Double-submit CSRF protection for cookie-authenticated requests."""

import secrets
from flask import request, g, current_app

from utils.errors import ErrorCode
from utils.responses import rejected

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")

def issue_csrf_token(resp):
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,  # must be readable by client JS
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp

def csrf_failure():
    """Return an error response when the cookie and header tokens disagree."""
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        return rejected(ErrorCode.FORBIDDEN, "CSRF validation failed", status=403)
    return None

def init_csrf(app, exempt_paths=()):
    exempt = set(exempt_paths)

    @app.before_request
    def _csrf_protect():
        if not app.config.get("CSRF_ENABLED", True):
            return None
        if request.method not in UNSAFE_METHODS or request.path in exempt:
            return None
        # anonymous requests carry no session cookie worth forging
        if getattr(g, "user", None) is None:
            return None
        return csrf_failure()
