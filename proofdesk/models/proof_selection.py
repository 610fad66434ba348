"""
Proof selection models.

One ProofSelection per (tenant, gallery, client username). Items reference
photos of the same gallery; a photo appears at most once per selection.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from proofdesk.database import Base


class SelectionStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class ProofSelection(Base):
    __tablename__ = "proof_selections"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    gallery_id = Column(Integer, ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False)
    client_username = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=SelectionStatus.DRAFT.value)
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    items = relationship(
        "ProofSelectionItem",
        back_populates="selection",
        order_by="ProofSelectionItem.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "gallery_id", "client_username", name="uq_proof_selection_client"),
        Index("ix_proof_selections_tenant_gallery", "tenant_id", "gallery_id"),
    )

    @property
    def is_submitted(self) -> bool:
        return self.status == SelectionStatus.SUBMITTED.value

    def __repr__(self):
        return f"<ProofSelection(id={self.id}, gallery_id={self.gallery_id}, status={self.status})>"


class ProofSelectionItem(Base):
    __tablename__ = "proof_selection_items"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    selection_id = Column(Integer, ForeignKey("proof_selections.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(Integer, ForeignKey("photos.id", ondelete="CASCADE"), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    selection = relationship("ProofSelection", back_populates="items")

    __table_args__ = (
        UniqueConstraint("selection_id", "photo_id", name="uq_proof_selection_item_photo"),
        Index("ix_proof_selection_items_tenant", "tenant_id"),
    )
