from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    # naive UTC, matches the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)

# Largest primary key SQLite (and BIGINT) can store
MAX_ROW_ID = 2**63 - 1


def get_row(model, pk):
    """``db.session.get`` that answers None for keys no row can have."""
    if pk is None or pk < 1 or pk > MAX_ROW_ID:
        return None
    return db.session.get(model, pk)
