"""
Credential issuer.

Owns email/password identities: creates them, authenticates them and issues
the opaque access/refresh token pair that ends up inside the session. The
rest of the system treats it as an external collaborator and only talks to
it through ``CredentialIssuer``.
"""

from __future__ import annotations

import secrets
import string
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import commit_or_raise, get_session
from app.core.errors import AuthenticationError, ConflictError
from app.models.user import Credential, Profile

log = structlog.get_logger()
settings = get_settings()

PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------

def generate_password(length: int | None = None) -> str:
    """Strong random password with at least one lower, upper, digit and symbol."""
    length = max(length or settings.invite_password_length, 8)
    while True:
        password = "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
        if (
            any(c.islower() for c in password)
            and any(c.isupper() for c in password)
            and any(c.isdigit() for c in password)
            and any(not c.isalnum() for c in password)
        ):
            return password


def generate_invite_token() -> str:
    """Unguessable, URL-safe invite token."""
    return secrets.token_urlsafe(32)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IssuedTokens:
    profile_id: uuid.UUID
    access_token: str
    refresh_token: str


def create_access_token(profile_id: uuid.UUID, *, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {
        "sub": str(profile_id),
        "type": "access",
        "iat": now,
        "exp": exp,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


class CredentialIssuer:
    """Email/password identities backed by the ``credentials`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def email_registered(self, email: str) -> bool:
        result = await self.session.execute(
            select(Credential.profile_id).where(Credential.email == normalize_email(email))
        )
        return result.first() is not None

    async def sign_up(self, email: str, password: str, full_name: str) -> Profile:
        """Create a profile plus its login. Raises ConflictError if the email is taken."""
        email = normalize_email(email)
        if await self.email_registered(email):
            raise ConflictError("User with this email already exists")

        profile = Profile(full_name=full_name)
        credential = Credential(
            profile_id=profile.id,
            email=email,
            password_hash=hash_password(password),
        )
        self.session.add(profile)
        await self.session.flush()
        self.session.add(credential)
        await commit_or_raise(self.session, "User with this email already exists")
        self.session.expunge(profile)
        self.session.expunge(credential)
        log.info("identity.created", profile_id=str(profile.id))
        return profile

    async def sign_in(self, email: str, password: str) -> IssuedTokens:
        """Check an email/password pair and issue a token pair."""
        result = await self.session.execute(
            select(Credential).where(Credential.email == normalize_email(email))
        )
        credential = result.scalar_one_or_none()
        if credential is None or not verify_password(password, credential.password_hash):
            log.warning("auth.login_failure", reason="bad_credentials")
            raise AuthenticationError("Invalid email or password")

        return IssuedTokens(
            profile_id=credential.profile_id,
            access_token=create_access_token(credential.profile_id),
            refresh_token=secrets.token_urlsafe(48),
        )

    async def delete_identity(self, profile_id: uuid.UUID) -> None:
        """Remove an identity entirely (used to unwind failed provisioning)."""
        credential = await self.session.get(Credential, profile_id)
        if credential is not None:
            await self.session.delete(credential)
            # Credential references the profile, so it has to go first.
            await self.session.flush()
        profile = await self.session.get(Profile, profile_id)
        if profile is not None:
            await self.session.delete(profile)
        await commit_or_raise(self.session)
        log.info("identity.deleted", profile_id=str(profile_id))


async def get_credential_issuer(
    session: AsyncSession = Depends(get_session),
) -> CredentialIssuer:
    return CredentialIssuer(session)
