"""
Approval Step Submission Models

Submissions are the artifacts a step needs reviewed before it can complete
(a technical design, a sample photo, a shipment confirmation).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, model_validator


class SubmissionArtifactType(str, Enum):
    TECHNICAL_DESIGN = "TECHNICAL_DESIGN"
    SAMPLE = "SAMPLE"
    CUSTOM = "CUSTOM"


class SubmissionState(str, Enum):
    UNSUBMITTED = "UNSUBMITTED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    SKIPPED = "SKIPPED"


class ApprovalStepSubmission(BaseModel):
    """
    One reviewable artifact of a step

    The assignee is a collaborator, a team user, or nobody; never both.
    """

    id: str
    step_id: str
    title: str
    artifact_type: SubmissionArtifactType = SubmissionArtifactType.CUSTOM
    state: SubmissionState = SubmissionState.UNSUBMITTED
    collaborator_id: str | None = None
    team_user_id: str | None = None
    created_at: datetime
    deleted_at: datetime | None = None

    @model_validator(mode="after")
    def _single_assignee(self) -> "ApprovalStepSubmission":
        if self.collaborator_id is not None and self.team_user_id is not None:
            raise ValueError("A submission has at most one assignee")
        return self

    @property
    def is_assigned(self) -> bool:
        return self.collaborator_id is not None or self.team_user_id is not None
