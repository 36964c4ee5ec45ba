"""Quotes and comments written by students about teachers and classmates."""

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class TeacherQuote(Base):
    __tablename__ = "teacher_quotes"
    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    teacher = relationship("Teacher")
    user = relationship("User")

    __table_args__ = (Index("ix_teacher_quotes_teacher", "teacher_id"),)


class StudentQuote(Base):
    __tablename__ = "student_quotes"
    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    student = relationship("Student")
    user = relationship("User")

    __table_args__ = (Index("ix_student_quotes_student", "student_id"),)


class Comment(Base):
    """One comment per author and target (student or teacher)."""

    __tablename__ = "comments"
    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_type = Column(String(10), nullable=False)  # STUDENT | TEACHER
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"))
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"))
    text = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    author = relationship("User")
    student = relationship("Student")
    teacher = relationship("Teacher")

    __table_args__ = (
        UniqueConstraint("author_id", "student_id", name="uq_comment_author_student"),
        UniqueConstraint("author_id", "teacher_id", name="uq_comment_author_teacher"),
    )
