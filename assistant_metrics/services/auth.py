"""
Session Auth — Supabase Auth as the credential authority.

Login exchanges email/password for a Supabase access token at the GoTrue
token endpoint; the token is kept in an httponly session cookie.
Requests carrying the cookie are verified against Supabase's JWKS
endpoint (RS256/ES256):

  {SUPABASE_URL}/auth/v1/.well-known/jwks.json

The JWKS client is cached in-process with a 1-hour TTL.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import jwt
from jwt import PyJWKClient

from assistant_metrics.config import settings

logger = logging.getLogger(__name__)

_AUTH_TIMEOUT = 10.0


class AuthError(Exception):
    """Credentials were rejected by the auth provider."""


# ---------------------------------------------------------------------------
# JWKS client — cached singleton with 1-hour TTL
# ---------------------------------------------------------------------------

_jwks_client: PyJWKClient | None = None
_jwks_client_created_at: float = 0
_JWKS_TTL_SECONDS = 3600


def _get_jwks_client() -> PyJWKClient:
    """Get or create the JWKS client (cached with TTL)."""
    global _jwks_client, _jwks_client_created_at
    now = time.monotonic()

    if _jwks_client is None or (now - _jwks_client_created_at) > _JWKS_TTL_SECONDS:
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
        _jwks_client_created_at = now
        logger.info("JWKS client initialized: %s", jwks_url)

    return _jwks_client


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def verify_session_token(token: str | None) -> str | None:
    """Return the user id (JWT subject) for a valid token, else None."""
    if not token:
        return None

    try:
        signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
        payload: dict[str, Any] = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience="authenticated",
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Session auth: invalid token: %s", e)
        return None
    except Exception as e:
        logger.error("Session auth: JWKS verification failed: %s", e)
        return None

    return payload.get("sub") or None


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def sign_in_with_password(email: str, password: str) -> str:
    """Exchange credentials for an access token.

    Raises AuthError when Supabase rejects the credentials; transport and
    5xx errors propagate as httpx exceptions.
    """
    api_key = settings.supabase_anon_key or settings.supabase_service_key
    url = f"{settings.supabase_url}/auth/v1/token"

    async with httpx.AsyncClient() as client:
        resp = await client.post(
            url,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers={"apikey": api_key, "Content-Type": "application/json"},
            timeout=_AUTH_TIMEOUT,
        )

    if resp.status_code in (400, 401, 403, 422):
        logger.info("Login rejected for %s", email)
        raise AuthError("Invalid credentials")
    resp.raise_for_status()

    token = resp.json().get("access_token")
    if not token:
        raise AuthError("No access token in auth response")
    return token
