from .gallery import Gallery, GalleryAccessMode, Photo
from .proof_selection import ProofSelection, ProofSelectionItem, SelectionStatus
from .tenant import BillingStatus, Tenant, TenantStatus
from .tenant_domain import TenantDomain, TenantDomainStatus
from .user import User, UserRole, UserStatus

__all__ = [
    "BillingStatus",
    "Gallery",
    "GalleryAccessMode",
    "Photo",
    "ProofSelection",
    "ProofSelectionItem",
    "SelectionStatus",
    "Tenant",
    "TenantDomain",
    "TenantDomainStatus",
    "TenantStatus",
    "User",
    "UserRole",
    "UserStatus",
]
