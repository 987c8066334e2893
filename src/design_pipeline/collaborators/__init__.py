"""Collaborators - who may see or work on a design"""

from design_pipeline.collaborators.models import Collaborator, CollaboratorRole, TeamUser
from design_pipeline.collaborators.repository import (
    CollaboratorRepository,
    TeamUserRepository,
)

__all__ = [
    "Collaborator",
    "CollaboratorRepository",
    "CollaboratorRole",
    "TeamUser",
    "TeamUserRepository",
]
