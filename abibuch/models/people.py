"""Whitelisted students and teachers — the people that can be voted for,
quoted and commented on."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Student(Base):
    """Whitelist entry. Registration is only possible for an active student
    whose email has not been claimed yet (user_id is NULL)."""

    __tablename__ = "students"
    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    gender = Column(String(10))  # MALE | FEMALE | NULL (unknown)
    active = Column(Boolean, nullable=False, default=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), unique=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="student")

    __table_args__ = (Index("ix_students_name", "last_name", "first_name"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Teacher(Base):
    __tablename__ = "teachers"
    id = Column(Integer, primary_key=True)
    salutation = Column(String(10), nullable=False)  # HERR | FRAU
    last_name = Column(String(100), nullable=False)
    first_name = Column(String(100))
    subject = Column(String(100))
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    def display_name(self, include_subject: bool = True, short: bool = True) -> str:
        """Format as e.g. "Hr. Müller (Mathe)"; long form uses Herr/Frau."""
        if short:
            prefix = "Hr." if self.salutation == "HERR" else "Fr."
        else:
            prefix = "Herr" if self.salutation == "HERR" else "Frau"
        name = f"{prefix} {self.last_name}"
        if include_subject and self.subject:
            return f"{name} ({self.subject})"
        return name
