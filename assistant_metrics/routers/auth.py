"""
Auth Router — session cookie login/logout.

Endpoints:
  POST /auth/login   — Verify credentials with Supabase Auth, set session cookie
  POST /auth/logout  — Clear session cookie
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, HTTPException, Response

from assistant_metrics.config import settings
from assistant_metrics.models.auth import LoginRequest
from assistant_metrics.models.metrics import MetricResponse
from assistant_metrics.services.auth import AuthError, sign_in_with_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model_exclude_none=True)
async def login(body: LoginRequest, response: Response) -> MetricResponse:
    """Exchange email/password for a session cookie."""
    try:
        token = await sign_in_with_password(body.email, body.password)
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    except httpx.HTTPError as e:
        logger.error("Auth provider unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Authentication unavailable")

    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_cookie_max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return MetricResponse(success=True, message="Signed in")


@router.post("/logout", response_model_exclude_none=True)
async def logout(response: Response) -> MetricResponse:
    """Drop the session cookie."""
    response.delete_cookie(settings.session_cookie_name)
    return MetricResponse(success=True, message="Signed out")
