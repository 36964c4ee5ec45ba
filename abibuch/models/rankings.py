"""Ranking models — questions, votes, per-user submission state."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class RankingQuestion(Base):
    __tablename__ = "ranking_questions"
    id = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)  # STUDENT | TEACHER
    answer_mode = Column(String(20), nullable=False, default="SINGLE")  # SINGLE | GENDER_SPECIFIC | DUO
    order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    votes = relationship("RankingVote", back_populates="question", cascade="all, delete-orphan")


class RankingVote(Base):
    """One vote per (voter, question, gender_target).

    For DUO questions the pair is stored with the lower id first so that
    A+B and B+A aggregate together.
    """

    __tablename__ = "ranking_votes"
    id = Column(Integer, primary_key=True)
    voter_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("ranking_questions.id", ondelete="CASCADE"), nullable=False)
    gender_target = Column(String(10), nullable=False, default="ALL")  # MALE | FEMALE | ALL
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"))
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"))
    student_id2 = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"))
    teacher_id2 = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"))
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    question = relationship("RankingQuestion", back_populates="votes")
    student = relationship("Student", foreign_keys=[student_id])
    teacher = relationship("Teacher", foreign_keys=[teacher_id])
    student2 = relationship("Student", foreign_keys=[student_id2])
    teacher2 = relationship("Teacher", foreign_keys=[teacher_id2])

    __table_args__ = (
        UniqueConstraint("voter_id", "question_id", "gender_target", name="uq_vote_voter_question_target"),
        Index("ix_votes_question", "question_id"),
    )


class RankingSubmission(Base):
    __tablename__ = "ranking_submissions"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")  # DRAFT | SUBMITTED
    submitted_at = Column(UTCDateTime)

    user = relationship("User", back_populates="ranking_submission")
