# SQLModel definitions - imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin, CreatedAtMixin  # noqa: F401
from .user import Profile, Credential  # noqa: F401
from .organization import Organization  # noqa: F401
from .user_org import OrganizationMember  # noqa: F401
from .team import Team, TeamMember  # noqa: F401
from .invite import Invite  # noqa: F401
from .activity import ActivityLogEntry  # noqa: F401
