"""System configuration and admin attribution models — app settings
singleton, admin aliases, audit log, student activity feed."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class AppSettings(Base):
    """Single-row table. Seeded on startup, created lazily otherwise."""

    __tablename__ = "app_settings"
    id = Column(Integer, primary_key=True)
    deadline = Column(UTCDateTime)
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class AdminAlias(Base):
    """Short name an admin picks to attribute audit log entries."""

    __tablename__ = "admin_aliases"
    id = Column(Integer, primary_key=True)
    name = Column(String(20), unique=True, nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True)
    alias = Column(String(20))
    action = Column(String(20), nullable=False)  # CREATE | UPDATE | DELETE | IMPORT | REORDER | SETTINGS
    entity = Column(String(50), nullable=False)
    entity_id = Column(String(50))
    entity_name = Column(String(255))
    old_values = Column(JSON)
    new_values = Column(JSON)
    success = Column(Boolean, nullable=False, default=True)
    error = Column(Text)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_audit_created", "created_at"),
        Index("ix_audit_entity", "entity"),
    )


class StudentActivity(Base):
    """Student-facing activity feed. CREATE rows are bumped (count += n)
    instead of duplicated when repeated within a short window."""

    __tablename__ = "student_activities"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(20), nullable=False)  # SUBMIT | RETRACT | CREATE | COMPLETE
    entity = Column(String(50), nullable=False)
    entity_name = Column(String(255))
    count = Column(Integer, nullable=False, default=1)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User")

    __table_args__ = (Index("ix_student_activity_updated", "updated_at"),)
