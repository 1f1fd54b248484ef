"""Organization invite model."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Invite(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organization_invites"
    __table_args__ = (
        # At most one pending invite per (organization, email).
        sa.Index(
            "uq_organization_invites_pending_email",
            "organization_id",
            "email",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    inviter_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False)  # admin | member
    token: str = Field(unique=True, nullable=False, index=True)
    status: str = Field(default="pending", nullable=False)  # pending | accepted | revoked | expired
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
