"""
Custom Exception Classes for ProofDesk

Services and the data gateway raise these typed errors; they never build
HTTP responses. The route boundary (``proofdesk.exception_handlers``) is the
only place that maps an ``error_code`` to a status code.
"""

from typing import Any


class ProofDeskError(Exception):
    """Base exception class for all ProofDesk errors"""

    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Scope Exceptions (fatal to the request, raised before any data access)
# ============================================================================


class TenantScopeError(ProofDeskError):
    """Base class for tenant scope errors"""


class TenantScopeMissing(TenantScopeError):
    """Raised when data access is attempted outside a tenant scope"""

    error_code = "TENANT_SCOPE_MISSING"

    def __init__(self, message: str = "Tenant scope is missing"):
        super().__init__(message=message)


class TenantRequired(TenantScopeError):
    """Raised when no tenant can be derived from the request"""

    error_code = "TENANT_REQUIRED"

    def __init__(self, host: str | None = None):
        super().__init__(
            message=f"Tenant required for host: {host or 'unknown-host'}",
            details={"host": host} if host else {},
        )


class TenantNotFound(TenantScopeError):
    """Raised when the resolved slug or domain has no tenant row"""

    error_code = "TENANT_NOT_FOUND"

    def __init__(self, lookup: str | None = None):
        super().__init__(message="Tenant not found", details={"lookup": lookup} if lookup else {})


# ============================================================================
# Domain-State Exceptions (expected, surfaced as 4xx)
# ============================================================================


class DomainStateError(ProofDeskError):
    """Base class for expected business-rule failures"""


class GalleryNotFound(DomainStateError):
    error_code = "GALLERY_NOT_FOUND"

    def __init__(self, gallery_id: Any | None = None):
        super().__init__(message="Gallery not found", details={"gallery_id": gallery_id})


class GalleryNotPrivate(DomainStateError):
    error_code = "GALLERY_NOT_PRIVATE"

    def __init__(self, gallery_id: Any | None = None):
        super().__init__(message="Gallery is not private", details={"gallery_id": gallery_id})


class PhotoNotFound(DomainStateError):
    error_code = "PHOTO_NOT_FOUND"

    def __init__(self, photo_id: Any | None = None):
        super().__init__(message="Photo not found", details={"photo_id": photo_id})


class SelectionNotFound(DomainStateError):
    error_code = "SELECTION_NOT_FOUND"

    def __init__(self, gallery_id: Any | None = None):
        super().__init__(message="Selection not found", details={"gallery_id": gallery_id})


class SelectionSubmitted(DomainStateError):
    """Raised on any mutation of a submitted (immutable) selection"""

    error_code = "SELECTION_SUBMITTED"

    def __init__(self, selection_id: Any | None = None):
        super().__init__(message="Selection is submitted", details={"selection_id": selection_id})


class MaxSelectionsExceeded(DomainStateError):
    error_code = "MAX_SELECTIONS_EXCEEDED"

    def __init__(self, item_count: int, max_selections: int):
        super().__init__(
            message="Selection exceeds max selections",
            details={"item_count": item_count, "max_selections": max_selections},
        )


class InvalidGalleryAccess(DomainStateError):
    """Raised when a gallery's access settings are incomplete or unknown"""

    error_code = "INVALID_GALLERY_ACCESS"

    def __init__(self, reason: str):
        super().__init__(message=reason, details={"reason": reason})


class InvalidHostname(DomainStateError):
    error_code = "HOSTNAME_INVALID"

    def __init__(self, hostname: str | None = None):
        super().__init__(message="Hostname is invalid", details={"hostname": hostname})


class NoDomainConnected(DomainStateError):
    error_code = "NO_DOMAIN_CONNECTED"

    def __init__(self):
        super().__init__(message="No custom domain is connected")


class InvalidTenantSlug(DomainStateError):
    error_code = "INVALID_SLUG"

    def __init__(self, message: str, slug: str | None = None):
        super().__init__(message=message, details={"slug": slug})


class SlugTaken(DomainStateError):
    error_code = "SLUG_TAKEN"

    def __init__(self, slug: str):
        super().__init__(message=f"Tenant slug '{slug}' is already taken", details={"slug": slug})


class EmailTaken(DomainStateError):
    error_code = "EMAIL_TAKEN"

    def __init__(self, email: str):
        super().__init__(message="An account with this email already exists", details={"email": email})


class PaymentAccountTaken(DomainStateError):
    error_code = "PAYMENT_ACCOUNT_TAKEN"

    def __init__(self, account_id: str):
        super().__init__(
            message="Payment account is already linked to another tenant", details={"account_id": account_id}
        )


class TenantRecordNotFound(DomainStateError):
    """Raised by admin operations addressing a tenant by primary key"""

    error_code = "TENANT_RECORD_NOT_FOUND"

    def __init__(self, tenant_id: Any):
        super().__init__(message="Tenant not found", details={"tenant_id": tenant_id})


# ============================================================================
# Storage & Quota Exceptions
# ============================================================================


class StorageError(ProofDeskError):
    """Base class for upload and quota errors"""


class StorageQuotaExceeded(StorageError):
    error_code = "STORAGE_QUOTA_EXCEEDED"

    def __init__(self, used_bytes: int, requested_bytes: int, limit_bytes: int):
        super().__init__(
            message="Storage quota exceeded",
            details={"used_bytes": used_bytes, "requested_bytes": requested_bytes, "limit_bytes": limit_bytes},
        )


class InvalidBytes(StorageError):
    error_code = "INVALID_BYTES"

    def __init__(self, value: Any):
        super().__init__(message="Byte size must be a positive integer", details={"bytes": value})


class InvalidUploadSignature(StorageError):
    error_code = "INVALID_SIGNATURE"

    def __init__(self, storage_key: str):
        super().__init__(message="Upload URL signature is invalid or expired", details={"storage_key": storage_key})


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(ProofDeskError):
    """Raised when no valid session is present"""

    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message)


class InvalidCredentialsError(AuthenticationError):
    error_code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message=message)


class BillingInactiveError(ProofDeskError):
    """Raised when a tenant session is valid but billing is not active"""

    error_code = "BILLING_INACTIVE"

    def __init__(self, tenant_id: Any | None = None):
        super().__init__(message="Billing is not active", details={"redirect": "/billing", "tenant_id": tenant_id})


class AuthorizationError(ProofDeskError):
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message=message)
