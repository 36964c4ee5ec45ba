"""
routers/dashboard.py — Student start page data

Returns the deadline, the state of Steckbrief and rankings, survey
progress and the student's own recent activity.

Called by: main.py (router mount)
Depends on: services/deadline_service, services/ranking_service,
            services/survey_service, services/student_activity_service
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_student
from ..models import User
from ..services import ranking_service, student_activity_service, survey_service
from ..services.auth_service import ensure_profile
from ..services.deadline_service import deadline_info

log = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


@router.get("/api/dashboard")
async def dashboard(user: User = Depends(require_student), db: Session = Depends(get_db)):
    profile = ensure_profile(db, user)
    db.commit()
    survey = survey_service.student_survey(db, user)
    return {
        **deadline_info(db),
        "steckbrief_status": profile.status,
        "feedback": profile.feedback,
        "ranking_status": ranking_service.submission_status(db, user.id),
        "survey": {"answered": survey["answered"], "total": survey["total"]},
        "activities": student_activity_service.list_activities(db, limit=20, user_id=user.id)["activities"],
    }
