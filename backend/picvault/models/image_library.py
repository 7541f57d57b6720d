"""Image library models.

A library is keyed 1:1 by user id. Its URLs are stored one row per image so an
upload is an INSERT, never a read-modify-write of the whole list.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from picvault.database import Base
from picvault.models.user import utc_now


class ImageLibrary(Base):
    __tablename__ = "image_libraries"

    user_id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)


class LibraryImage(Base):
    """One public URL in a user's library. Autoincrement id gives upload order."""
    __tablename__ = "library_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("image_libraries.user_id"), nullable=False)
    url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_library_images_user_id_id", "user_id", "id"),
    )
