from flask import Blueprint, request, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, validate_password
from security.session import (
    open_session,
    close_session,
    close_all_sessions,
    set_session_cookie,
    clear_session_cookie,
)
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required, resolve_user
from utils.errors import BusinessError, ErrorCode, InvalidRequest
from utils.responses import ok, rejected


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def user_json(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "role": user.role.value,
        "is_active": user.is_active,
    }


def create_account(email, password, full_name=None, phone_number=None, role=Role.CUSTOMER) -> User:
    """Validate and insert a new account. Shared by self-registration and admin."""
    email = (email or "").strip().lower()
    if not _is_valid_email(email):
        raise InvalidRequest("Invalid email")
    valid, errors = validate_password(password)
    if not valid:
        raise InvalidRequest("Password does not meet policy", details=errors)

    if resolve_user(email):
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        raise BusinessError(ErrorCode.EMAIL_ALREADY_REGISTERED)

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=(full_name or "").strip() or None,
        phone_number=(phone_number or "").strip() or None,
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    user = create_account(
        data.get("email"),
        data.get("password") or "",
        full_name=data.get("full_name"),
        phone_number=data.get("phone_number"),
    )
    log_event("REGISTER_SUCCESS", user_id=user.id)
    return ok({"id": user.id, "message": "Registered successfully"}, status=201)


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = resolve_user(email)
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return rejected(ErrorCode.UNAUTHENTICATED, "Invalid credentials", status=401)

    # Rotate: revoke any existing sessions for this user
    revoked_count = close_all_sessions(user.id)

    resp, status = ok(user_json(user))
    set_session_cookie(resp, open_session(user))
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, status


@auth_bp.get("/me")
@login_required
def me():
    return ok(user_json(g.user))


@auth_bp.post("/logout")
@login_required
def logout():
    close_session()
    log_event("LOGOUT", user_id=g.user.id)

    resp, status = ok({"message": "Logged out"})
    clear_session_cookie(resp)
    return resp, status
