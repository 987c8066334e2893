"""Submissions - artifacts reviewed within an approval step"""

from design_pipeline.submissions.models import (
    ApprovalStepSubmission,
    SubmissionArtifactType,
    SubmissionState,
)
from design_pipeline.submissions.repository import ApprovalSubmissionRepository
from design_pipeline.submissions.transitions import ALLOWED_TRANSITIONS, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ApprovalStepSubmission",
    "ApprovalSubmissionRepository",
    "SubmissionArtifactType",
    "SubmissionState",
    "can_transition",
]
