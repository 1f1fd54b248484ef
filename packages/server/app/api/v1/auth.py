"""
Authentication endpoints.

POST /auth/signup   - Register an owner, or an admin/member of an existing org
POST /auth/login    - Email/password login, sets the session + CSRF cookies
POST /auth/logout   - Clear the session cookies
GET  /auth/me       - Current session contents
GET  /auth/check    - Cheap "am I logged in" probe
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response

from app.core.credentials import CredentialIssuer, get_credential_issuer
from app.core.session import clear_session_cookies, get_current_session, set_session_cookies
from app.services import accounts
from app.services.store import IdentityStore, get_store
from teamhub_shared.schemas.auth import LoginRequest, SessionDescriptor, SignupRequest
from teamhub_shared.schemas.common import APIResponse

log = structlog.get_logger()
router = APIRouter()


@router.post("/signup", response_model=APIResponse, status_code=201)
async def signup(
    body: SignupRequest,
    store: IdentityStore = Depends(get_store),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    profile = await accounts.register(store, issuer, body)
    return APIResponse(
        success=True,
        message="User created successfully",
        data={"profile_id": str(profile.id), "full_name": profile.full_name, "role": body.role.value},
    )


@router.post("/login", response_model=APIResponse)
async def login(
    body: LoginRequest,
    response: Response,
    store: IdentityStore = Depends(get_store),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    descriptor = await accounts.authenticate(store, issuer, body.email, body.password)
    set_session_cookies(response, descriptor)
    return APIResponse(
        success=True,
        message="Login successful",
        data=descriptor.summary().model_dump(mode="json"),
    )


@router.post("/logout", response_model=APIResponse)
async def logout(response: Response):
    clear_session_cookies(response)
    return APIResponse(success=True, message="Logged out successfully")


@router.get("/me", response_model=APIResponse)
async def me(session: SessionDescriptor = Depends(get_current_session)):
    return APIResponse(
        success=True,
        message="User data retrieved",
        data=session.summary().model_dump(mode="json"),
    )


@router.get("/check", response_model=APIResponse)
async def check(session: SessionDescriptor = Depends(get_current_session)):
    return APIResponse(success=True, message="Authenticated")
