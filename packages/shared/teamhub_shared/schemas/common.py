from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class InviteRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    EXPIRED = "expired"


class APIResponse(BaseModel):
    """Envelope returned by every endpoint, success or failure."""
    success: bool
    message: str
    data: Optional[Any] = None
