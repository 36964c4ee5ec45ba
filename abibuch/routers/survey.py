"""
routers/survey.py — Multiple-choice survey for students and admins

Business Rules:
- Students answer active questions, one option each, until the deadline
- Replacing a question's options drops its answers

Called by: main.py (router mount)
Depends on: services/survey_service
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, require_open_deadline, require_student, unwrap
from ..models import User
from ..schemas.admin import SurveyQuestionCreate, SurveyQuestionUpdate, SurveyReorder
from ..schemas.student import SurveyAnswerRequest
from ..services import survey_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["survey"])


@router.get("/api/survey")
async def survey(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return survey_service.student_survey(db, user)


@router.put("/api/survey/{question_id}", dependencies=[Depends(require_open_deadline)])
async def answer(
    question_id: int,
    payload: SurveyAnswerRequest,
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(survey_service.answer_question(db, user, question_id, payload.option_id))


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/api/admin/survey")
async def admin_questions(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"questions": survey_service.admin_list(db)}


@router.post("/api/admin/survey", status_code=201)
async def create_question(
    payload: SurveyQuestionCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return survey_service.create_question(db, payload.text, payload.options, alias)


@router.get("/api/admin/survey/stats")
async def survey_stats(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return survey_service.stats(db)


@router.patch("/api/admin/survey/reorder")
async def reorder_questions(
    payload: SurveyReorder,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    orders = [o.model_dump() for o in payload.question_orders]
    return survey_service.reorder_questions(db, orders, alias)


@router.patch("/api/admin/survey/{question_id}")
async def update_question(
    question_id: int,
    payload: SurveyQuestionUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(survey_service.update_question(db, question_id, payload.sent(), alias))


@router.delete("/api/admin/survey/{question_id}")
async def delete_question(
    question_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(survey_service.delete_question(db, question_id, alias))
