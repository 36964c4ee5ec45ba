"""Survey models — questions with ordered options, one answer per user."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class SurveyQuestion(Base):
    __tablename__ = "survey_questions"
    id = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    options = relationship(
        "SurveyOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="SurveyOption.order",
    )
    answers = relationship("SurveyAnswer", back_populates="question", cascade="all, delete-orphan")


class SurveyOption(Base):
    __tablename__ = "survey_options"
    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    order = Column(Integer, nullable=False, default=0)

    question = relationship("SurveyQuestion", back_populates="options")
    answers = relationship("SurveyAnswer", back_populates="option", cascade="all, delete-orphan")


class SurveyAnswer(Base):
    __tablename__ = "survey_answers"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=False)
    option_id = Column(Integer, ForeignKey("survey_options.id", ondelete="CASCADE"), nullable=False)
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    question = relationship("SurveyQuestion", back_populates="answers")
    option = relationship("SurveyOption", back_populates="answers")

    __table_args__ = (UniqueConstraint("user_id", "question_id", name="uq_answer_user_question"),)
