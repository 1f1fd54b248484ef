"""
Session codec.

The session descriptor is the client-held credential: it is serialized into
a signed JWT stored in the ``th_session`` cookie and decoded once per request
into an immutable ``SessionDescriptor``. Nothing is stored server-side.

Also sets the double-submit CSRF cookie that ``CSRFMiddleware`` checks.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from fastapi import Request, Response
from pydantic import ValidationError as PydanticValidationError

from app.core.config import get_settings
from app.core.errors import AuthenticationError
from teamhub_shared.schemas.auth import SessionDescriptor

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "th_session"
CSRF_COOKIE = "th_csrf"
CSRF_HEADER = "X-CSRF-Token"


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_session(
    descriptor: SessionDescriptor,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session descriptor into a compact token."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.session_expire_minutes))
    payload = descriptor.model_dump(mode="json")
    payload.update({"iat": now, "exp": exp})
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session(token: str) -> SessionDescriptor:
    """Verify and decode a session token. Raises AuthenticationError on any defect."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session has expired. Please login again")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid session")

    payload.pop("iat", None)
    payload.pop("exp", None)
    try:
        return SessionDescriptor.model_validate(payload)
    except PydanticValidationError:
        raise AuthenticationError("Invalid session")


def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Cookies
# ---------------------------------------------------------------------------

def set_session_cookies(response: Response, descriptor: SessionDescriptor) -> None:
    """Attach the session and CSRF cookies to a response."""
    max_age = settings.session_expire_minutes * 60
    response.set_cookie(
        key=SESSION_COOKIE,
        value=encode_session(descriptor),
        httponly=True,
        secure=not settings.debug,  # allow non-HTTPS in dev
        samesite="lax",
        path="/",
        max_age=max_age,
    )
    response.set_cookie(
        key=CSRF_COOKIE,
        value=generate_csrf_token(),
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_current_session(request: Request) -> SessionDescriptor:
    """Decode the session cookie. Every authenticated route depends on this."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise AuthenticationError()
    return decode_session(token)
