"""
routers/admin_rankings.py — Ranking questions and results for admins

Business Rules:
- DELETE deactivates a question; its votes remain
- Stats count only voters whose rankings are SUBMITTED

Called by: main.py (router mount)
Depends on: services/ranking_question_service, services/ranking_results_service
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, unwrap
from ..models import User
from ..schemas.admin import QuestionReorder, RankingQuestionCreate, RankingQuestionUpdate
from ..services import ranking_question_service, ranking_results_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.get("/api/admin/ranking-questions")
async def list_questions(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"questions": ranking_question_service.list_questions(db)}


@router.post("/api/admin/ranking-questions", status_code=201)
async def create_question(
    payload: RankingQuestionCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return ranking_question_service.create_question(db, payload.model_dump(mode="json"), alias)


@router.patch("/api/admin/ranking-questions/reorder")
async def reorder_questions(
    payload: QuestionReorder,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    orders = [o.model_dump() for o in payload.question_orders]
    return ranking_question_service.reorder_questions(db, orders, alias)


@router.patch("/api/admin/ranking-questions/{question_id}")
async def update_question(
    question_id: int,
    payload: RankingQuestionUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(ranking_question_service.update_question(db, question_id, payload.sent(), alias))


@router.delete("/api/admin/ranking-questions/{question_id}")
async def delete_question(
    question_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(ranking_question_service.deactivate_question(db, question_id, alias))


# ── Results ──────────────────────────────────────────────────────────


@router.get("/api/admin/rankings/stats")
async def rankings_stats(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return ranking_results_service.stats_overview(db)


@router.get("/api/admin/rankings/stats/{question_id}")
async def question_stats(question_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(ranking_results_service.question_stats(db, question_id))
