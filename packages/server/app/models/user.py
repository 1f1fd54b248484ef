"""Identity models: public profile plus the credential record behind it."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Profile(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "profiles"

    full_name: str = Field(nullable=False)


class Credential(CreatedAtMixin, SQLModel, table=True):
    """Email/password login, owned by the credential issuer."""

    __tablename__ = "credentials"

    profile_id: uuid.UUID = Field(foreign_key="profiles.id", primary_key=True)
    email: str = Field(unique=True, nullable=False, index=True)
    password_hash: str = Field(nullable=False)  # bcrypt
