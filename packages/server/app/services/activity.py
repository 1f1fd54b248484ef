"""
Activity log: append-only audit trail of organization mutations.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import ActivityLogEntry
from app.services.store import IdentityStore
from teamhub_shared.schemas.activity import ActivityLogRead

log = structlog.get_logger()


async def record_activity(
    store: IdentityStore,
    *,
    organization_id: uuid.UUID,
    actor_id: uuid.UUID,
    action: str,
    action_type: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Append an entry. A failed write is logged and never fails the caller.

    Writes through its own session so that a failed insert cannot roll back
    or expire anything the calling request still holds.
    """
    entry = ActivityLogEntry(
        organization_id=organization_id,
        actor_id=actor_id,
        action=action,
        action_type=action_type,
        details=details or {},
    )
    try:
        async with AsyncSession(store.session.bind, expire_on_commit=False) as session:
            await IdentityStore(session).append_activity(entry)
    except Exception:
        log.exception(
            "activity.write_failed",
            organization_id=str(organization_id),
            action_type=action_type,
        )


async def list_activity(store: IdentityStore, organization_id: uuid.UUID) -> list[ActivityLogRead]:
    entries = await store.list_activity(organization_id)
    return [
        ActivityLogRead(
            id=entry.id,
            organization_id=entry.organization_id,
            actor_id=entry.actor_id,
            action=entry.action,
            action_type=entry.action_type,
            metadata=entry.details,
            created_at=entry.created_at,
        )
        for entry in entries
    ]
