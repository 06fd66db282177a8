"""
Common utility functions used across services and routes.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_format(dt: datetime | None) -> str | None:
    """Format datetime as ISO string with Z suffix."""
    if dt is None:
        return None
    return dt.isoformat() + "Z"


def new_id(prefix: str) -> str:
    """
    Generate a row identifier of the form PREFIX-XXXXXXXXXXXX.

    Services call this explicitly before every insert, so identifier policy
    lives in one place instead of in per-model insert hooks.
    """
    prefix = (prefix or "").strip().upper()
    if not prefix:
        raise ValueError("id prefix is required")
    return f"{prefix}-{uuid4().hex[:12].upper()}"


def completion_percent(ratio: float) -> int:
    """Round a completion ratio (0..1) to a whole percent."""
    return int(round(max(0.0, min(1.0, ratio)) * 100))


def insert_unique(db: Session, row) -> bool:
    """
    Add and commit `row`.

    Returns False, after rolling the session back, when the database rejects
    the insert with an integrity error (a concurrent writer won the race).
    """
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True
