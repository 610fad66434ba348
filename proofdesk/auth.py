"""
Session oracle.

Signed HS256 session cookies for three audiences:

  - tenant users (``role=TENANT``, carries ``tenant_id``)
  - the platform master admin (``role=MASTER_ADMIN``)
  - gallery clients (``role=CLIENT_GALLERY``, carries ``tenant_id`` and ``gallery_id``)

``get_verified_tenant_session`` is what the request scope guard consults; it
only reports a session whose tenant row still exists.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.config import settings
from proofdesk.database import get_db
from proofdesk.exceptions import AuthenticationError, AuthorizationError, BillingInactiveError
from proofdesk.models.tenant import Tenant

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ROLE_TENANT = "TENANT"
ROLE_MASTER_ADMIN = "MASTER_ADMIN"
ROLE_CLIENT_GALLERY = "CLIENT_GALLERY"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class TenantSession:
    sub: str
    role: str
    tenant_id: int
    active: bool
    billing_active: bool


@dataclass(frozen=True)
class ClientGallerySession:
    tenant_id: int
    gallery_id: int


# ── Token helpers ──────────────────────────────────────────────────────────────


def create_session_token(claims: dict[str, Any], max_age_seconds: int | None = None) -> str:
    if "sub" not in claims and claims.get("role") != ROLE_CLIENT_GALLERY:
        raise ValueError("Missing 'sub' claim in session data.")
    now = int(time.time())
    to_encode = dict(claims)
    to_encode.update({"iat": now, "exp": now + (max_age_seconds or settings.session_max_age_seconds)})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_session_token(token: str | None) -> dict[str, Any] | None:
    """Return the verified claims, or None for a missing, expired or forged token."""
    if not token:
        return None
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except JWTError as e:
        logger.warning("Session token rejected: %s", e)
        return None


def set_session_cookie(response: Response, cookie_name: str, token: str) -> None:
    response.set_cookie(
        cookie_name,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, cookie_name: str) -> None:
    response.delete_cookie(cookie_name, path="/")


# ── Tenant sessions ────────────────────────────────────────────────────────────


def create_tenant_session_token(sub: str, tenant_id: int) -> str:
    return create_session_token({"sub": sub, "role": ROLE_TENANT, "tenant_id": tenant_id})


async def get_verified_tenant_session(request: Request, db: AsyncSession) -> TenantSession | None:
    """
    Verify the tenant session cookie and report the tenant's current state.

    Returns None when there is no valid tenant session or the tenant row is gone.
    """
    claims = decode_session_token(request.cookies.get(settings.session_cookie_name))
    if not claims or claims.get("role") != ROLE_TENANT or claims.get("tenant_id") is None:
        return None

    tenant_id = int(claims["tenant_id"])
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalars().first()
    if tenant is None:
        logger.warning("Session references missing tenant_id=%d", tenant_id)
        return None

    return TenantSession(
        sub=str(claims.get("sub")),
        role=ROLE_TENANT,
        tenant_id=tenant.id,
        active=tenant.is_active,
        billing_active=tenant.is_billing_active,
    )


async def require_tenant_session(request: Request, db: AsyncSession = Depends(get_db)) -> TenantSession:
    """
    FastAPI dependency for the tenant workspace.

    Raises AuthenticationError without an active tenant, BillingInactiveError
    when the tenant has not finished billing onboarding.
    """
    session = await get_verified_tenant_session(request, db)
    if session is None or not session.active:
        raise AuthenticationError()
    if not session.billing_active:
        raise BillingInactiveError(session.tenant_id)
    return session


# ── Master admin ───────────────────────────────────────────────────────────────


def verify_master_admin(username: str, password: str) -> bool:
    if username != settings.master_admin_username:
        return False
    return verify_password(password, settings.master_admin_password_hash)


def create_master_admin_session_token(username: str) -> str:
    return create_session_token({"sub": username, "role": ROLE_MASTER_ADMIN})


async def require_master_admin_session(request: Request) -> str:
    claims = decode_session_token(request.cookies.get(settings.session_cookie_name))
    if not claims:
        raise AuthenticationError()
    if claims.get("role") != ROLE_MASTER_ADMIN:
        raise AuthorizationError()
    return str(claims["sub"])


# ── Gallery clients ────────────────────────────────────────────────────────────


def create_client_gallery_session_token(tenant_id: int, gallery_id: int) -> str:
    return create_session_token({"role": ROLE_CLIENT_GALLERY, "tenant_id": tenant_id, "gallery_id": gallery_id})


def get_client_gallery_session(request: Request) -> ClientGallerySession | None:
    claims = decode_session_token(request.cookies.get(settings.client_gallery_cookie_name))
    if not claims or claims.get("role") != ROLE_CLIENT_GALLERY:
        return None
    try:
        return ClientGallerySession(tenant_id=int(claims["tenant_id"]), gallery_id=int(claims["gallery_id"]))
    except (KeyError, TypeError, ValueError):
        return None


def is_client_session_valid(session: ClientGallerySession | None, tenant_id: int, gallery_id: int) -> bool:
    return session is not None and session.tenant_id == tenant_id and session.gallery_id == gallery_id


def verify_client_credentials(
    username: str,
    password: str,
    stored_username: str | None,
    stored_hash: str | None,
) -> bool:
    if not stored_username or username != stored_username:
        return False
    return verify_password(password, stored_hash)
