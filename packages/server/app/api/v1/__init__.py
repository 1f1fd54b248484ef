"""
API v1 Router

Organization-scoped endpoints take an optional ``organization_id`` query
parameter; without it the session's organization is used.
"""

from fastapi import APIRouter
from . import activity, invites, organizations, teams

router = APIRouter()

router.include_router(organizations.router, tags=["Organizations"])
router.include_router(teams.router, prefix="/teams", tags=["Teams"])
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(activity.router, prefix="/activity-logs", tags=["Activity"])


@router.get("/", tags=["API"])
async def api_root():
    """API root - returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/organization/members",
            "/teams",
            "/invites",
            "/activity-logs",
        ],
    }
