"""
Gallery and Photo models.

Photos carry ``tenant_id`` redundantly next to ``gallery_id`` so every photo
query can filter on the tenant directly.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from proofdesk.database import Base


class GalleryAccessMode(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class Gallery(Base):
    __tablename__ = "galleries"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    access_mode = Column(String(20), nullable=False, default=GalleryAccessMode.PUBLIC.value)
    client_username = Column(String(100), nullable=True)
    client_password_hash = Column(String, nullable=True)
    max_selections = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    photos = relationship("Photo", back_populates="gallery", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (Index("ix_galleries_tenant_id", "tenant_id"),)

    @property
    def is_private(self) -> bool:
        return self.access_mode == GalleryAccessMode.PRIVATE.value

    def __repr__(self):
        return f"<Gallery(id={self.id}, tenant_id={self.tenant_id}, access_mode={self.access_mode})>"


class Photo(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    gallery_id = Column(Integer, ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False)

    storage_key = Column(String(500), nullable=True, unique=True)
    original_filename = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    bytes = Column(BigInteger, nullable=True)  # unknown until the upload is finalized
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    alt_text = Column(String(500), nullable=True)
    caption = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    gallery = relationship("Gallery", back_populates="photos")

    __table_args__ = (
        Index("ix_photos_tenant_gallery", "tenant_id", "gallery_id"),
        Index("ix_photos_sort_order", "gallery_id", "sort_order"),
    )

    def __repr__(self):
        return f"<Photo(id={self.id}, gallery_id={self.gallery_id}, bytes={self.bytes})>"
