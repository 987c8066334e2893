"""
Collaborator Models

A collaborator links a user or a team to a design. Bid assignees get a
PREVIEW collaborator (auto-cancelled when the bid expires) which becomes a
PARTNER on acceptance.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class CollaboratorRole(str, Enum):
    PREVIEW = "PREVIEW"  # may look at the design while deciding on a bid
    PARTNER = "PARTNER"  # accepted a bid, works on the design


class Collaborator(BaseModel):
    """Exactly one of user_id/team_id is set"""

    id: str
    design_id: str
    user_id: str | None = None
    team_id: str | None = None
    role: CollaboratorRole
    created_at: datetime
    cancelled_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        """Access lasts through cancelled_at, like the bid expiry window"""
        return self.cancelled_at is None or self.cancelled_at >= now


class TeamUser(BaseModel):
    id: str
    team_id: str
    user_id: str
