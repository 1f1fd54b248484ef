"""Activity log schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ActivityLogRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    actor_id: uuid.UUID
    action: str
    action_type: str
    metadata: dict[str, Any] = {}
    created_at: Optional[datetime] = None
