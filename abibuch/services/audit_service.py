"""
audit_service.py — Admin Audit Log

Persists one AuditLog row per admin write, attributed to the alias the
admin picked for the current browser session, and renders entries for the
admin activity page (German labels, relative times, grouping of bulk runs).

Business Rules:
- Audit writes never break the admin operation: failures are logged only
- Alias comes from the admin_alias + admin_alias_timestamp cookie pair;
  older than the timeout (2 h default) or "unknown" → no alias
- UPDATE that flips `active` between two booleans displays as ACTIVATE/DEACTIVATE
- Consecutive entries group when alias, action, entity, success match and
  neither carries an entity_name (reorders, bulk imports)
- Entity filter "Fotos" covers Photo and PhotoCategory

Called by: routers/admin_*.py, dependencies.get_admin_alias
Depends on: models (AuditLog), config (admin_alias_timeout_minutes)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import AuditAction
from ..models import AdminAlias, AuditLog

log = logging.getLogger(__name__)

ADMIN_ALIAS_COOKIE = "admin_alias"
ADMIN_ALIAS_TIMESTAMP_COOKIE = "admin_alias_timestamp"
UNKNOWN_ALIAS = "unknown"

ENTITY_LABELS = {
    "Student": "Schüler",
    "Teacher": "Lehrer",
    "User": "Benutzer",
    "RankingQuestion": "Ranking-Frage",
    "SteckbriefField": "Steckbrief-Feld",
    "Profile": "Steckbrief",
    "SurveyQuestion": "Umfrage-Frage",
    "SurveyOption": "Umfrage-Option",
    "Fotos": "Fotos",
    "Photo": "Fotos",
    "PhotoCategory": "Fotos",
    "TeacherQuote": "Lehrer-Zitat",
    "StudentQuote": "Schüler-Zitat",
    "Comment": "Kommentar",
    "AppSettings": "Einstellungen",
    "AdminAlias": "Admin-Kürzel",
}

ACTION_LABELS = {
    "CREATE": "erstellt",
    "UPDATE": "bearbeitet",
    "DELETE": "gelöscht",
    "IMPORT": "importiert",
    "REORDER": "neu sortiert",
    "SETTINGS": "geändert",
    "ACTIVATE": "aktiviert",
    "DEACTIVATE": "deaktiviert",
}

# Filter value → stored entity names
ENTITY_FILTERS = {
    "Fotos": ("Photo", "PhotoCategory"),
}

MAX_PAGE_SIZE = 100


# ── Writing ──────────────────────────────────────────────────────────


def log_admin_action(
    db: Session,
    *,
    alias: str | None,
    action: AuditAction | str,
    entity: str,
    entity_id: Any = None,
    entity_name: str | None = None,
    old_values: Mapping[str, Any] | None = None,
    new_values: Mapping[str, Any] | None = None,
    success: bool = True,
    error: str | None = None,
) -> AuditLog | None:
    """Persist an audit entry in its own commit.

    Call after the admin change has been committed. Returns the entry, or
    None when writing failed.
    """
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    entry = AuditLog(
        alias=alias or None,
        action=action_value,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        entity_name=entity_name,
        old_values=jsonable_encoder(dict(old_values)) if old_values else None,
        new_values=jsonable_encoder(dict(new_values)) if new_values else None,
        success=success,
        error=error,
    )
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        log.exception(f"Failed to write audit log: {action_value} {entity} {entity_id}")
        return None
    return entry


def snapshot(obj, fields: tuple[str, ...]) -> dict:
    """Pick plain column values off a model for old/new value snapshots."""
    return {f: getattr(obj, f) for f in fields}


def changed_values(old: dict, new: dict) -> tuple[dict, dict]:
    """Reduce two snapshots to the keys whose value changed."""
    keys = [k for k in new if old.get(k) != new.get(k)]
    return {k: old.get(k) for k in keys}, {k: new.get(k) for k in keys}


# ── Alias cookie ─────────────────────────────────────────────────────


def alias_from_cookies(cookies: Mapping[str, str], now_ms: int | None = None) -> str | None:
    """Return the admin alias if the cookie pair is present and fresh."""
    alias = cookies.get(ADMIN_ALIAS_COOKIE)
    timestamp = cookies.get(ADMIN_ALIAS_TIMESTAMP_COOKIE)
    if not alias or not timestamp:
        return None
    try:
        timestamp_ms = int(timestamp)
    except ValueError:
        return None
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    if now_ms - timestamp_ms >= settings.admin_alias_timeout_minutes * 60 * 1000:
        return None
    return None if alias == UNKNOWN_ALIAS else alias


# ── Display ──────────────────────────────────────────────────────────


def get_display_action(action: str, old_values: dict | None, new_values: dict | None) -> str:
    if action != AuditAction.UPDATE:
        return action
    old_active = (old_values or {}).get("active")
    new_active = (new_values or {}).get("active")
    if isinstance(old_active, bool) and isinstance(new_active, bool) and old_active != new_active:
        return "ACTIVATE" if new_active else "DEACTIVATE"
    return action


def get_display_text(entry: AuditLog) -> str:
    entity_label = ENTITY_LABELS.get(entry.entity, entry.entity)
    action = get_display_action(entry.action, entry.old_values, entry.new_values)
    action_label = ACTION_LABELS.get(action, action)

    if not entry.success:
        suffix = f" - {entry.error}" if entry.error else ""
        return f"Fehler: {entity_label} {action_label}{suffix}"
    if entry.entity_name:
        return f'{entity_label}: "{entry.entity_name}" {action_label}'
    return f"{entity_label} {action_label}"


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """German relative time: "vor 5 Min.", "gestern", then dd.mm.yyyy."""
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    diff_sec = int((now - when).total_seconds())
    diff_min = diff_sec // 60
    diff_hour = diff_min // 60
    diff_day = diff_hour // 24

    if diff_sec < 60:
        return "gerade eben"
    if diff_min < 60:
        return f"vor {diff_min} Min."
    if diff_hour < 24:
        return f"vor {diff_hour} Std."
    if diff_day == 1:
        return "gestern"
    if diff_day < 7:
        return f"vor {diff_day} Tagen"
    return when.strftime("%d.%m.%Y")


def serialize_log(entry: AuditLog, now: datetime | None = None) -> dict:
    return {
        "id": entry.id,
        "alias": entry.alias,
        "action": entry.action,
        "display_action": get_display_action(entry.action, entry.old_values, entry.new_values),
        "entity": entry.entity,
        "entity_label": ENTITY_LABELS.get(entry.entity, entry.entity),
        "entity_id": entry.entity_id,
        "entity_name": entry.entity_name,
        "old_values": entry.old_values,
        "new_values": entry.new_values,
        "success": entry.success,
        "error": entry.error,
        "display_text": get_display_text(entry),
        "relative_time": format_relative_time(entry.created_at, now) if entry.created_at else None,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


# ── Grouping ─────────────────────────────────────────────────────────


def _groupable(current: dict, prev: dict) -> bool:
    return (
        current["alias"] == prev["alias"]
        and current["action"] == prev["action"]
        and current["entity"] == prev["entity"]
        and current["success"] == prev["success"]
        and not current["entity_name"]
        and not prev["entity_name"]
    )


def group_consecutive_logs(logs: list[dict]) -> list[dict]:
    """Collapse runs of similar entries (newest first, as listed).

    Each group: {"count", "first", "last", "logs"}.
    """
    if not logs:
        return []

    groups = []
    current = [logs[0]]
    for prev, entry in zip(logs, logs[1:]):
        if _groupable(entry, prev):
            current.append(entry)
        else:
            groups.append(_make_group(current))
            current = [entry]
    groups.append(_make_group(current))
    return groups


def _make_group(entries: list[dict]) -> dict:
    return {"count": len(entries), "first": entries[0], "last": entries[-1], "logs": entries}


# ── Listing ──────────────────────────────────────────────────────────


def list_audit_logs(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    entity: str | None = None,
    alias: str | None = None,
    errors_only: bool = False,
) -> dict:
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)

    q = db.query(AuditLog)
    if entity:
        q = q.filter(AuditLog.entity.in_(ENTITY_FILTERS.get(entity, (entity,))))
    if alias:
        q = q.filter(AuditLog.alias == alias)
    if errors_only:
        q = q.filter(AuditLog.success.is_(False))

    total = q.count()
    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
    now = datetime.now(timezone.utc)
    logs = [serialize_log(r, now) for r in rows]
    return {
        "logs": logs,
        "groups": group_consecutive_logs(logs),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


# ── Admin aliases ────────────────────────────────────────────────────


def list_aliases(db: Session) -> list[dict]:
    rows = db.query(AdminAlias).order_by(AdminAlias.name).all()
    return [{"id": a.id, "name": a.name} for a in rows]


def create_alias(db: Session, name: str) -> dict:
    name = name.strip()
    if db.query(AdminAlias).filter(AdminAlias.name == name).first():
        return {"error": "Dieses Kürzel existiert bereits", "status": 409}
    alias = AdminAlias(name=name)
    db.add(alias)
    db.commit()
    return {"alias": {"id": alias.id, "name": alias.name}}


def delete_alias(db: Session, alias_id: int) -> dict:
    alias = db.get(AdminAlias, alias_id)
    if not alias:
        return {"error": "Kürzel nicht gefunden.", "status": 404}
    db.delete(alias)
    db.commit()
    return {"success": True}


def alias_cookie_values(alias: str | None, now_ms: int | None = None) -> dict[str, str]:
    """Cookie pair for the alias session; no alias stores the anonymous marker."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    value = (alias or "").strip() or UNKNOWN_ALIAS
    return {ADMIN_ALIAS_COOKIE: value, ADMIN_ALIAS_TIMESTAMP_COOKIE: str(now_ms)}
