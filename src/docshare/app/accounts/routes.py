"""Signup, login and logout endpoints.

  POST /signup   → create user            (400 missing field, 409 duplicate)
  POST /login    → issue session token    (401 bad credentials)
  POST /logout   → revoke session token   (401 no/invalid session)

This module provides:
  ``create_account_router``: FastAPI router factory.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ..errors import AuthError
from ..security.auth_guard import extract_bearer_token
from .service import CredentialService


# ── Request schemas ──────────────────────────────────────────────────


class SignupRequest(BaseModel):
    """Request body for account creation."""

    name: str = Field(default='', description='Display name')
    username: str = Field(default='', description='Unique login name')
    email: str = Field(default='')
    password: str = Field(default='')


class LoginRequest(BaseModel):
    username: str = ''
    password: str = ''


# ── Route factory ────────────────────────────────────────────────────


def create_account_router(credentials: CredentialService) -> APIRouter:
    """Create the account router.

    Args:
        credentials: Credential store / session registry service.
    """
    router = APIRouter(tags=['accounts'])

    @router.post('/signup')
    async def signup(body: SignupRequest):
        await credentials.signup(
            name=body.name.strip(),
            username=body.username.strip(),
            email=body.email.strip(),
            password=body.password,
        )
        return {'success': True, 'message': 'Signup successful'}

    @router.post('/login')
    async def login(body: LoginRequest):
        token = await credentials.login(body.username.strip(), body.password)
        return {'success': True, 'token': token}

    @router.post('/logout')
    async def logout(request: Request):
        """Revoke the presented session token."""
        token = extract_bearer_token(request)
        if token is None or not await credentials.revoke_session(token):
            raise AuthError('Invalid session')
        return {'success': True}

    return router
