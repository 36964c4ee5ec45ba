"""Steckbrief models — per-student profile, configurable fields, values."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")  # DRAFT | SUBMITTED
    feedback = Column(Text)
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    contact_insta = Column(String(100))
    submitted_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="profile")
    values = relationship(
        "SteckbriefValue", back_populates="profile", cascade="all, delete-orphan"
    )


class SteckbriefField(Base):
    """Admin-defined field. key and type are immutable after creation."""

    __tablename__ = "steckbrief_fields"
    id = Column(Integer, primary_key=True)
    key = Column(String(50), unique=True, nullable=False)
    type = Column(String(20), nullable=False)  # TEXT | TEXTAREA | SINGLE_IMAGE | MULTI_IMAGE
    label = Column(String(100), nullable=False)
    placeholder = Column(String(200))
    max_length = Column(Integer)
    max_files = Column(Integer)
    rows = Column(Integer)
    required = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    values = relationship(
        "SteckbriefValue", back_populates="field", cascade="all, delete-orphan"
    )


class SteckbriefValue(Base):
    __tablename__ = "steckbrief_values"
    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    field_id = Column(Integer, ForeignKey("steckbrief_fields.id", ondelete="CASCADE"), nullable=False)
    text_value = Column(Text)
    image_value = Column(String(500))
    images_value = Column(JSON, default=list)
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    profile = relationship("Profile", back_populates="values")
    field = relationship("SteckbriefField", back_populates="values")

    __table_args__ = (UniqueConstraint("profile_id", "field_id", name="uq_value_profile_field"),)
