"""
routers/rankings.py — Student voting in the peer rankings

Business Rules:
- Only students vote; admins get 403
- Votes, deletions and submission are blocked after the deadline
- Changing a vote after submitting silently reverts to DRAFT
- Search returns at most 10 people

Called by: main.py (router mount)
Depends on: services/ranking_service, services/deadline_service
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..constants import GenderTarget
from ..database import get_db
from ..dependencies import require_open_deadline, require_student, require_user, unwrap
from ..models import User
from ..schemas.student import VoteRequest
from ..services import ranking_service
from ..services.deadline_service import deadline_info

log = logging.getLogger(__name__)

router = APIRouter(tags=["rankings"])


@router.get("/api/rankings")
async def rankings_overview(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {**ranking_service.get_overview(db, user), **deadline_info(db)}


@router.patch("/api/rankings/vote", dependencies=[Depends(require_open_deadline)])
async def cast_vote(payload: VoteRequest, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(
        ranking_service.cast_vote(
            db,
            user,
            payload.question_id,
            payload.gender_target.value,
            student_id=payload.student_id,
            teacher_id=payload.teacher_id,
            student_id2=payload.student_id2,
            teacher_id2=payload.teacher_id2,
        )
    )


@router.delete("/api/rankings/vote/{question_id}", dependencies=[Depends(require_open_deadline)])
async def delete_vote(
    question_id: int,
    gender_target: str = Query(GenderTarget.ALL.value),
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(ranking_service.delete_vote(db, user, question_id, gender_target))


@router.post("/api/rankings/submit", dependencies=[Depends(require_open_deadline)])
async def submit(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(ranking_service.submit(db, user))


@router.post("/api/rankings/retract")
async def retract(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(ranking_service.retract(db, user))


# ── Search ───────────────────────────────────────────────────────────


@router.get("/api/rankings/search/students")
async def search_students(
    q: str = Query(""),
    gender: str | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return {"results": ranking_service.search_students(db, q, gender or None)}


@router.get("/api/rankings/search/teachers")
async def search_teachers(
    q: str = Query(""),
    gender: str | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return {"results": ranking_service.search_teachers(db, q, gender or None)}
