"""Deadline service — the global cutoff after which students can no
longer change Steckbrief, votes, quotes, comments or photos.

The deadline lives on the AppSettings singleton row. No deadline means
submissions stay open.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..models import AppSettings

log = logging.getLogger(__name__)


def get_app_settings(db: Session) -> AppSettings:
    """Return the settings row, creating it on first access."""
    row = db.query(AppSettings).order_by(AppSettings.id).first()
    if not row:
        row = AppSettings()
        db.add(row)
        db.flush()
    return row


def get_deadline(db: Session) -> datetime | None:
    row = db.query(AppSettings).order_by(AppSettings.id).first()
    return row.deadline if row else None


def is_deadline_passed(db: Session, now: datetime | None = None) -> bool:
    deadline = get_deadline(db)
    if deadline is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now > deadline


def parse_deadline(value: str | None) -> datetime | None:
    """Parse an ISO timestamp from the admin form. Naive values are UTC.

    Raises ValueError for unparseable input.
    """
    if value is None or not str(value).strip():
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def set_deadline(db: Session, deadline: datetime | None) -> tuple[datetime | None, datetime | None]:
    """Store a new deadline. Returns (old, new); caller commits."""
    row = get_app_settings(db)
    old = row.deadline
    row.deadline = deadline
    log.info(f"Deadline changed: {old} -> {deadline}")
    return old, deadline


def deadline_info(db: Session) -> dict:
    deadline = get_deadline(db)
    return {
        "deadline": deadline.isoformat() if deadline else None,
        "deadline_passed": is_deadline_passed(db),
    }
