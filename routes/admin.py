import math

from flask import Blueprint, g, request

from models import db
from models.db import get_row
from models.user import User, Role
from routes.auth import create_account, user_json
from security.rbac import require_operation
from utils.audit import log_event
from utils.errors import AccessDenied, ErrorCode, InvalidRequest, NotFound
from utils.pagination import page_args
from utils.responses import ok

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/users")
@require_operation("user.manage")
def list_users():
    role = request.args.get("role")
    q = User.query
    if role:
        try:
            q = q.filter(User.role == Role(role.strip().upper()))
        except ValueError:
            raise InvalidRequest("Invalid role", details=[r.value for r in Role])

    page_number, page_size = page_args()
    total = q.count()
    rows = (
        q.order_by(User.created_at.desc(), User.id.desc())
        .offset((page_number - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return ok({
        "items": [user_json(u) for u in rows],
        "page": page_number,
        "page_size": page_size,
        "item_count": len(rows),
        "total_items": total,
        "total_pages": math.ceil(total / page_size),
    })


@admin_bp.post("/employees")
@require_operation("user.manage")
def create_employee():
    data = request.get_json(silent=True) or {}
    user = create_account(
        data.get("email"),
        data.get("password") or "",
        full_name=data.get("full_name"),
        phone_number=data.get("phone_number"),
        role=Role.EMPLOYEE,
    )
    log_event("EMPLOYEE_CREATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return ok(user_json(user), status=201)


@admin_bp.patch("/users/<int:user_id>/status")
@require_operation("user.manage")
def set_user_status(user_id: int):
    data = request.get_json(silent=True) or {}
    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        raise InvalidRequest("is_active must be true or false")

    user = get_row(User, user_id)
    if not user:
        raise NotFound(ErrorCode.USER_NOT_FOUND)
    if user.id == g.user.id:
        raise AccessDenied("Cannot change your own status")

    user.is_active = is_active
    db.session.commit()

    log_event("USER_STATUS_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"is_active": is_active})
    return ok(user_json(user))
