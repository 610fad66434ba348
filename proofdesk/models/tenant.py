"""
Tenant model.

Each Tenant represents one customer organisation. Tenants are never
physically removed: DELETED is a status. Row-level isolation is enforced by
the ``tenant_id`` column on every tenant-owned table.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String

from proofdesk.database import Base


class TenantStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class BillingStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(63), nullable=False, unique=True)  # subdomain label, e.g. "acme"
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value)
    billing_status = Column(String(20), nullable=False, default=BillingStatus.PENDING.value)

    # Storage quota
    storage_used_bytes = Column(BigInteger, nullable=False, default=0)
    storage_limit_bytes = Column(BigInteger, nullable=True)
    storage_enforced = Column(Boolean, nullable=False, default=False)

    # Payment oracle
    stripe_account_id = Column(String(255), nullable=True, unique=True)
    stripe_onboarding_complete = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_tenant_slug", "slug"),
        Index("idx_tenant_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value

    @property
    def is_billing_active(self) -> bool:
        return self.billing_status == BillingStatus.ACTIVE.value

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"
