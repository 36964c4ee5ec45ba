"""Photo gallery models — admin-defined categories, student uploads."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class PhotoCategory(Base):
    __tablename__ = "photo_categories"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    cover_image_url = Column(String(500))
    max_per_user = Column(Integer, nullable=False, default=10)
    order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    photos = relationship(
        "Photo",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Photo.created_at",
    )


class Photo(Base):
    __tablename__ = "photos"
    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("photo_categories.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(500), nullable=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    category = relationship("PhotoCategory", back_populates="photos")
    user = relationship("User")

    __table_args__ = (Index("ix_photos_category_user", "category_id", "user_id"),)
