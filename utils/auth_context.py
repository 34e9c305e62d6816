from functools import wraps
from flask import g, jsonify
from security.session import subject_from_request
from models.user import User
from utils.errors import ErrorCode

def resolve_user(email: str):
    """Map a verified login key to its user row, or None."""
    if not email:
        return None
    return User.query.filter_by(email=email.strip().lower()).first()

def load_current_user():
    # role and active flag are read once here and trusted for the request
    g.user = resolve_user(subject_from_request())

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(code=int(ErrorCode.UNAUTHENTICATED), message="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
