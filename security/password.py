import bcrypt
from flask import current_app, has_app_context

def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12

    # bcrypt expects bytes
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        # malformed stored hash
        return False

def validate_password(password: str) -> tuple[bool, list[str]]:
    errors = []
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 8)
    if not isinstance(password, str) or len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters")
    elif password.strip() != password:
        errors.append("Password must not start or end with whitespace")
    return (not errors), errors
