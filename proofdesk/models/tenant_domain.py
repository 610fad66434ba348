"""
TenantDomain model.

A custom hostname a tenant wants to serve the platform under. One row per
tenant; starting a new connection flow resets the existing row.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from proofdesk.database import Base


class TenantDomainStatus(str, enum.Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED = "VERIFIED"
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


class TenantDomain(Base):
    __tablename__ = "tenant_domains"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    hostname = Column(String(253), nullable=False, unique=True)
    status = Column(String(30), nullable=False, default=TenantDomainStatus.PENDING_VERIFICATION.value)

    verification_token = Column(String(64), nullable=False)
    txt_record_name = Column(String(300), nullable=False)
    txt_record_value = Column(String(300), nullable=False)

    verified_at = Column(DateTime, nullable=True)
    activated_at = Column(DateTime, nullable=True)
    disabled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    tenant = relationship("Tenant", lazy="joined")

    __table_args__ = (Index("idx_tenant_domain_status", "status"),)

    def __repr__(self):
        return f"<TenantDomain(tenant_id={self.tenant_id}, hostname={self.hostname}, status={self.status})>"
