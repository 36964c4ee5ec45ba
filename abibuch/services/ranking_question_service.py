"""
ranking_question_service.py — Admin CRUD for ranking questions

Business Rules:
- New questions are appended (order = max + 1)
- DELETE deactivates; votes on the question are kept
- Reorder takes [{"id", "order"}] and is audited as one REORDER entry

Called by: routers/admin_rankings.py
Depends on: models, services/audit_service, services/ordering
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import AuditAction
from ..models import RankingQuestion, RankingVote
from .audit_service import changed_values, log_admin_action, snapshot
from .ordering import apply_reorder, next_order

log = logging.getLogger(__name__)

QUESTION_FIELDS = ("text", "type", "answer_mode", "order", "active")
MSG_NOT_FOUND = "Frage nicht gefunden."


def serialize(q: RankingQuestion, vote_count: int | None = None) -> dict:
    out = {
        "id": q.id,
        "text": q.text,
        "type": q.type,
        "answer_mode": q.answer_mode,
        "order": q.order,
        "active": q.active,
        "created_at": q.created_at.isoformat() if q.created_at else None,
    }
    if vote_count is not None:
        out["vote_count"] = vote_count
    return out


def list_questions(db: Session) -> list[dict]:
    counts = dict(
        db.query(RankingVote.question_id, func.count(RankingVote.id)).group_by(RankingVote.question_id).all()
    )
    rows = db.query(RankingQuestion).order_by(RankingQuestion.order, RankingQuestion.id).all()
    return [serialize(q, counts.get(q.id, 0)) for q in rows]


def create_question(db: Session, data: dict, alias: str | None) -> dict:
    q = RankingQuestion(
        text=data["text"].strip(),
        type=data["type"],
        answer_mode=data["answer_mode"],
        order=next_order(db, RankingQuestion),
        active=True,
    )
    db.add(q)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="RankingQuestion",
        entity_id=q.id,
        entity_name=q.text,
        new_values=snapshot(q, QUESTION_FIELDS),
    )
    return {"message": "Frage erfolgreich erstellt.", "question": serialize(q)}


def update_question(db: Session, question_id: int, data: dict, alias: str | None) -> dict:
    q = db.get(RankingQuestion, question_id)
    if not q:
        return {"error": MSG_NOT_FOUND, "status": 404}
    before = snapshot(q, QUESTION_FIELDS)
    for key in QUESTION_FIELDS:
        if data.get(key) is not None:
            value = data[key]
            setattr(q, key, value.strip() if key == "text" else value)
    db.commit()
    old, new = changed_values(before, snapshot(q, QUESTION_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="RankingQuestion",
        entity_id=q.id,
        entity_name=q.text,
        old_values=old,
        new_values=new,
    )
    return {"message": "Frage erfolgreich aktualisiert.", "question": serialize(q)}


def deactivate_question(db: Session, question_id: int, alias: str | None) -> dict:
    q = db.get(RankingQuestion, question_id)
    if not q:
        return {"error": MSG_NOT_FOUND, "status": 404}
    q.active = False
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="RankingQuestion",
        entity_id=q.id,
        entity_name=q.text,
        old_values={"active": True},
        new_values={"active": False},
    )
    return {"message": "Frage erfolgreich deaktiviert."}


def reorder_questions(db: Session, orders: list[dict], alias: str | None) -> dict:
    updated = apply_reorder(db, RankingQuestion, orders)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.REORDER,
        entity="RankingQuestion",
        new_values={"count": updated},
    )
    return {"message": "Reihenfolge erfolgreich aktualisiert.", "updated": updated}
