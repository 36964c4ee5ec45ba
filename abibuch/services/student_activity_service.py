"""Student activity service — the "what happened" feed.

Records submissions, retractions and new content by students. Repeated
CREATE events (several quotes about the same teacher, a burst of photo
uploads) collapse into one row with a count.

Usage:
    from abibuch.services.student_activity_service import log_student_activity
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..constants import StudentAction
from ..models import StudentActivity, User

log = logging.getLogger(__name__)

GROUPING_WINDOW = timedelta(minutes=5)

ENTITY_LABELS = {
    "Steckbrief": "Steckbrief",
    "Rankings": "Rankings",
    "TeacherQuote": "Lehrer-Zitat",
    "StudentQuote": "Schüler-Zitat",
    "Comment": "Kommentar",
    "Photo": "Foto",
    "Survey": "Umfrage",
}

ENTITY_FILTERS = {
    "Zitate": ("TeacherQuote", "StudentQuote"),
}


def log_student_activity(
    db: Session,
    user_id: int,
    action: StudentAction | str,
    entity: str,
    entity_name: str | None = None,
    count: int = 1,
) -> StudentActivity | None:
    """Record an activity in its own commit. Never raises.

    Only CREATE is grouped: a row for the same (user, action, entity,
    entity_name) touched within the window gets its count bumped.
    """
    action_value = action.value if isinstance(action, StudentAction) else str(action)
    try:
        if action_value == StudentAction.CREATE:
            cutoff = datetime.now(timezone.utc) - GROUPING_WINDOW
            q = db.query(StudentActivity).filter(
                StudentActivity.user_id == user_id,
                StudentActivity.action == action_value,
                StudentActivity.entity == entity,
                StudentActivity.updated_at >= cutoff,
            )
            if entity_name is None:
                q = q.filter(StudentActivity.entity_name.is_(None))
            else:
                q = q.filter(StudentActivity.entity_name == entity_name)
            recent = q.order_by(StudentActivity.updated_at.desc()).first()
            if recent:
                recent.count = recent.count + count
                recent.updated_at = datetime.now(timezone.utc)
                db.commit()
                return recent

        entry = StudentActivity(
            user_id=user_id,
            action=action_value,
            entity=entity,
            entity_name=entity_name,
            count=count,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception:
        db.rollback()
        log.exception(f"Failed to log student activity: {action_value} {entity} user={user_id}")
        return None


def activity_text(action: str, entity: str, entity_name: str | None, count: int) -> str:
    """German text for an entry, without the student's name."""
    prefix = f"{count}× " if count > 1 else ""
    key = f"{entity}:{action}"

    if key == "Steckbrief:SUBMIT":
        return "hat den Steckbrief eingereicht"
    if key == "Steckbrief:RETRACT":
        return "hat den Steckbrief zurückgezogen"
    if key == "Rankings:SUBMIT":
        return "hat die Rankings eingereicht"
    if key == "Rankings:RETRACT":
        return "hat die Rankings zurückgezogen"
    if key in ("TeacherQuote:CREATE", "StudentQuote:CREATE"):
        noun = "Zitate" if count > 1 else "ein Zitat"
        return f"hat {prefix}{noun} über {entity_name} hinzugefügt"
    if key == "Comment:CREATE":
        return f"hat einen Kommentar über {entity_name} geschrieben"
    if key == "Photo:CREATE":
        if count > 1:
            return f"hat {count} Fotos in {entity_name} hochgeladen"
        return f"hat ein Foto in {entity_name} hochgeladen"
    if key == "Survey:COMPLETE":
        return "hat die Umfrage abgeschlossen"
    return f"{action} {entity}"


def serialize_activity(entry: StudentActivity, user: User | None = None) -> dict:
    user = user or entry.user
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "user_name": user.full_name if user else None,
        "action": entry.action,
        "entity": entry.entity,
        "entity_label": ENTITY_LABELS.get(entry.entity, entry.entity),
        "entity_name": entry.entity_name,
        "count": entry.count,
        "text": activity_text(entry.action, entry.entity, entry.entity_name, entry.count),
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
    }


def list_activities(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    user_id: int | None = None,
    entity: str | None = None,
) -> dict:
    limit = max(1, min(limit, 100))
    offset = max(0, offset)

    q = db.query(StudentActivity)
    if user_id is not None:
        q = q.filter(StudentActivity.user_id == user_id)
    if entity:
        q = q.filter(StudentActivity.entity.in_(ENTITY_FILTERS.get(entity, (entity,))))

    total = q.count()
    rows = (
        q.order_by(StudentActivity.updated_at.desc(), StudentActivity.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"activities": [serialize_activity(r) for r in rows], "total": total}
