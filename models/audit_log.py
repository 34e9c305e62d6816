from models.db import db, utcnow

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # nullable for unauth events
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. LOGIN_FAIL, BOOKING_ACCEPT
    entity = db.Column(db.String(80), nullable=True)   # e.g. booking, service
    entity_id = db.Column(db.String(80), nullable=True)

    # OK, REJECTED (business rule) or DENIED (no standing over the entity)
    outcome = db.Column(db.String(20), nullable=False, default="OK")
    code = db.Column(db.Integer, nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
