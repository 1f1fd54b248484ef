"""Organization membership (one row per organization/user pair)."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class OrganizationMember(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="member")  # owner | admin | member
