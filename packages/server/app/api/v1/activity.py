"""
Activity log API.

GET /api/v1/activity-logs - Newest-first audit trail of the resolved org
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from app.core.session import get_current_session
from app.services.activity import list_activity
from app.services.organizations import resolve_organization_id
from app.services.store import IdentityStore, get_store
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import APIResponse

router = APIRouter()


@router.get("", response_model=APIResponse)
async def list_activity_logs(
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    entries = await list_activity(store, org_id)
    return APIResponse(
        success=True,
        message="Activity logs fetched successfully",
        data=[entry.model_dump(mode="json") for entry in entries],
    )
