"""
Authentication Routes

POST /api/auth/signup        → create tenant + first user, start tenant session
POST /api/auth/login         → tenant user login
POST /api/auth/logout        → clear session cookies
POST /api/admin/login        → platform master admin login
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from proofdesk.auth import (
    clear_session_cookie,
    create_master_admin_session_token,
    create_tenant_session_token,
    set_session_cookie,
    verify_master_admin,
)
from proofdesk.config import settings
from proofdesk.database import get_db
from proofdesk.exceptions import InvalidCredentialsError
from proofdesk.services.tenant_service import authenticate_tenant_user, create_tenant_signup, get_tenant_by_id

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    tenant_name: str = Field(min_length=1, max_length=200)
    tenant_slug: str
    email: EmailStr
    password: str = Field(min_length=8)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class SessionResponse(BaseModel):
    tenant_id: int
    tenant_slug: str
    billing_status: str


@router.post("/api/auth/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def signup_route(
    payload: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    tenant, user = await create_tenant_signup(
        tenant_name=payload.tenant_name,
        tenant_slug=payload.tenant_slug,
        email=payload.email,
        password=payload.password,
        db=db,
    )
    set_session_cookie(response, settings.session_cookie_name, create_tenant_session_token(user.email, tenant.id))
    return SessionResponse(tenant_id=tenant.id, tenant_slug=tenant.slug, billing_status=tenant.billing_status)


@router.post("/api/auth/login", response_model=SessionResponse)
async def login_route(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    user = await authenticate_tenant_user(payload.email, payload.password, db)
    tenant = await get_tenant_by_id(user.tenant_id, db)
    if tenant is None:
        raise InvalidCredentialsError("Invalid email or password")
    set_session_cookie(response, settings.session_cookie_name, create_tenant_session_token(user.email, tenant.id))
    logger.info("Tenant user logged in: tenant_id=%d", tenant.id)
    return SessionResponse(tenant_id=tenant.id, tenant_slug=tenant.slug, billing_status=tenant.billing_status)


@router.post("/api/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_route(response: Response) -> Response:
    clear_session_cookie(response, settings.session_cookie_name)
    clear_session_cookie(response, settings.client_gallery_cookie_name)
    response.status_code = status.HTTP_204_NO_CONTENT
    return response


@router.post("/api/admin/login")
async def admin_login_route(payload: AdminLoginRequest, response: Response) -> dict:
    if not verify_master_admin(payload.username, payload.password):
        logger.warning("Failed master admin login for %s", payload.username)
        raise InvalidCredentialsError()
    set_session_cookie(response, settings.session_cookie_name, create_master_admin_session_token(payload.username))
    return {"ok": True}
