"""Database models — re-exports all models.

Import from here:  from abibuch.models import User, Student, ...
Or from submodules: from abibuch.models.auth import User
"""

from .base import Base  # noqa: F401

# Auth & Users
from .auth import User  # noqa: F401

# Whitelist: Students & Teachers
from .people import Student, Teacher  # noqa: F401

# Steckbrief
from .steckbrief import Profile, SteckbriefField, SteckbriefValue  # noqa: F401

# Rankings
from .rankings import RankingQuestion, RankingSubmission, RankingVote  # noqa: F401

# Survey
from .survey import SurveyAnswer, SurveyOption, SurveyQuestion  # noqa: F401

# Quotes & Comments
from .social import Comment, StudentQuote, TeacherQuote  # noqa: F401

# Photos
from .photos import Photo, PhotoCategory  # noqa: F401

# System Config, Audit, Activity
from .config import AdminAlias, AppSettings, AuditLog, StudentActivity  # noqa: F401
