"""Activity log model (append-only)."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class ActivityLogEntry(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "activity_log"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    actor_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    action: str = Field(nullable=False)  # human-readable, e.g. "Created team Design"
    action_type: str = Field(nullable=False)  # e.g. team.created, role.changed
    # "metadata" is reserved on SQLModel classes, so the attribute is named details.
    details: dict = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", sa.JSON, nullable=False),
    )
