"""Caller identity and data access scope models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Roles known to the access model."""

    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"


class CallerIdentity(BaseModel):
    """
    Verified identity of the user making a request.

    ``role`` is kept as a plain string so that profiles carrying a role the
    service does not know about still load; such callers get an empty scope.
    """

    id: str
    email: str = ""
    role: str = Field(..., description="admin, manager or agent")
    team_id: str | None = None
    linked_agent_id: str | None = Field(
        default=None, description="Agent id linked to this user (agent_user_id)"
    )
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True

    @property
    def user_role(self) -> UserRole | None:
        """Parsed role, or None for unrecognized role strings."""
        try:
            return UserRole(self.role)
        except ValueError:
            return None

    @property
    def is_admin(self) -> bool:
        return self.user_role is UserRole.ADMIN


class DataAccessScope(BaseModel):
    """
    The set of agent ids a caller may see for one request.

    Derived fresh per request. An empty ``allowed_agent_ids`` denies all
    data access.
    """

    model_config = ConfigDict(frozen=True)

    allowed_agent_ids: frozenset[str] = Field(default_factory=frozenset)
    is_floor_wide: bool = False
    is_team_scope: bool = False
    team_id: str | None = None
    team_name: str | None = None

    def allows(self, agent_id: str | None) -> bool:
        """Check whether an agent id is inside the scope."""
        return bool(agent_id) and agent_id in self.allowed_agent_ids

    @property
    def is_empty(self) -> bool:
        return not self.allowed_agent_ids


class AgentRoster(BaseModel):
    """Snapshot of who exists and who belongs to which team."""

    all_agent_ids: tuple[str, ...] = ()
    team_members: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    team_names: dict[str, str] = Field(default_factory=dict)
