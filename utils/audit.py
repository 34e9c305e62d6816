import json
from flask import request, has_request_context
from models import db
from models.audit_log import AuditLog
from utils.errors import AccessDenied, BusinessError, ErrorCode

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None,
              outcome="OK", code=None):
    ip = None
    user_agent = None
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        outcome=outcome,
        code=int(code) if code is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()

def audited(action: str, user_id, entity: str, entity_id, fn, *args, **kwargs):
    """Call ``fn`` and record the outcome, success or rejection, before returning or re-raising."""
    try:
        result = fn(*args, **kwargs)
    except BusinessError as e:
        log_event(action, user_id, entity, entity_id, outcome="REJECTED", code=e.code)
        raise
    except AccessDenied:
        log_event(action, user_id, entity, entity_id, outcome="DENIED", code=ErrorCode.FORBIDDEN)
        raise
    log_event(action, user_id, entity, entity_id)
    return result
