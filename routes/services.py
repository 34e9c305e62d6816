import math

from flask import Blueprint, request, g
from sqlalchemy import or_

from models import db
from models.db import get_row
from models.service import Service
from security.rbac import require_operation
from utils.audit import log_event
from utils.errors import ErrorCode, InvalidRequest, NotFound
from utils.pagination import page_args
from utils.parsing import parse_int
from utils.responses import ok

services_bp = Blueprint("services", __name__, url_prefix="/api/v1/services")

# search field selector: 1 = name, 2 = category, absent = both
FIELD_NAME = 1
FIELD_CATEGORY = 2


def _service_json(s: Service) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "category": s.category,
        "description": s.description,
        "price": s.price,
    }


def _parse_price(value, name):
    if value is None or value == "":
        return None
    price = parse_int(value, name)
    if price < 0:
        raise InvalidRequest(f"{name} must not be negative")
    return price


def _get_service_or_404(service_id: int) -> Service:
    service = get_row(Service, service_id)
    if not service:
        raise NotFound(ErrorCode.SERVICE_NOT_FOUND)
    return service


# ---------- PUBLIC: browse the catalog ----------
@services_bp.get("")
def list_services():
    keyword = (request.args.get("keyword") or "").strip()
    field = request.args.get("field", type=int)
    from_price = _parse_price(request.args.get("from_price"), "from_price")
    to_price = _parse_price(request.args.get("to_price"), "to_price")
    page_number, page_size = page_args()

    q = Service.query
    if keyword:
        pattern = f"%{keyword}%"
        if field == FIELD_NAME:
            q = q.filter(Service.name.ilike(pattern))
        elif field == FIELD_CATEGORY:
            q = q.filter(Service.category.ilike(pattern))
        else:
            q = q.filter(or_(Service.name.ilike(pattern), Service.category.ilike(pattern)))
    if from_price is not None:
        q = q.filter(Service.price >= from_price)
    if to_price is not None:
        q = q.filter(Service.price <= to_price)

    total = q.count()
    rows = (
        q.order_by(Service.id.asc())
        .offset((page_number - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return ok({
        "items": [_service_json(s) for s in rows],
        "page": page_number,
        "page_size": page_size,
        "item_count": len(rows),
        "total_items": total,
        "total_pages": math.ceil(total / page_size),
    })


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    return ok(_service_json(_get_service_or_404(service_id)))


# ---------- ADMIN: manage the catalog ----------
@services_bp.post("")
@require_operation("service.manage")
def create_service():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    category = (data.get("category") or "").strip()
    description = (data.get("description") or "").strip() or None
    price = _parse_price(data.get("price"), "price")

    if not name or not category or price is None:
        raise InvalidRequest("name, category and price are required")

    service = Service(name=name, category=category, description=description, price=price)
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return ok(_service_json(service), status=201)


@services_bp.patch("/<int:service_id>")
@require_operation("service.manage")
def update_service(service_id: int):
    service = _get_service_or_404(service_id)
    data = request.get_json(silent=True) or {}

    changed = []
    for attr in ("name", "category"):
        if attr in data:
            value = (data.get(attr) or "").strip()
            if not value:
                raise InvalidRequest(f"{attr} must not be empty")
            setattr(service, attr, value)
            changed.append(attr)

    if "description" in data:
        service.description = (data.get("description") or "").strip() or None
        changed.append("description")

    if "price" in data:
        price = _parse_price(data.get("price"), "price")
        if price is None:
            raise InvalidRequest("price must not be empty")
        service.price = price
        changed.append("price")

    db.session.commit()

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id,
              metadata={"fields": changed})
    return ok(_service_json(service))
