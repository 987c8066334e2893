"""
Workflow Invariants - pure precondition checks

Each function raises a typed error when the precondition does not hold and
returns None otherwise. They never read the database, so every rule is unit
testable with plain models.
"""

from design_pipeline.bids.models import Bid, BidRejectionReasons, BidState
from design_pipeline.collaborators.models import Collaborator
from design_pipeline.kernel.errors import (
    AssigneeLockedAfterApproval,
    BidNotOpen,
    CollaboratorNotOnDesign,
    DuplicateAcceptRejectError,
    InvalidAssignee,
    InvalidStepTransition,
    InvalidSubmissionTransition,
    MissingRejectionReason,
    SubmissionAlreadyApproved,
)
from design_pipeline.steps.models import ApprovalStep, ApprovalStepState
from design_pipeline.submissions.models import ApprovalStepSubmission, SubmissionState
from design_pipeline.submissions.transitions import can_transition


def validate_bid_decidable(bid: Bid, state: BidState) -> None:
    """
    A bid can be accepted or rejected only while INITIAL or OPEN

    Raises:
        DuplicateAcceptRejectError: If the bid was already accepted or rejected
        BidNotOpen: If the bid was removed or has expired
    """
    if state.is_decided:
        raise DuplicateAcceptRejectError(bid.id)
    if state in (BidState.REMOVED, BidState.EXPIRED):
        raise BidNotOpen(bid.id, state.value)


def validate_bid_removable(bid: Bid, state: BidState) -> None:
    """Only an ACCEPTED bid has a partner to remove"""
    if state != BidState.ACCEPTED:
        raise BidNotOpen(bid.id, state.value)


def validate_rejection_reasons(bid_id: str, reasons: BidRejectionReasons) -> None:
    if not reasons.has_reason:
        raise MissingRejectionReason(bid_id)


def validate_step_state(
    step: ApprovalStep, expected: ApprovalStepState, target: ApprovalStepState
) -> None:
    """
    Raises:
        InvalidStepTransition: If the step is not in the expected state
    """
    if step.state != expected:
        raise InvalidStepTransition(step.id, step.state.value, target.value)


def validate_single_assignee(collaborator_id: str | None, team_user_id: str | None) -> None:
    if collaborator_id is not None and team_user_id is not None:
        raise InvalidAssignee()


def validate_assignee_change_allowed(submission: ApprovalStepSubmission) -> None:
    """An approved submission keeps the assignee who got it approved"""
    if submission.state == SubmissionState.APPROVED:
        raise AssigneeLockedAfterApproval(submission.id)


def validate_submission_transition(
    submission: ApprovalStepSubmission, target: SubmissionState
) -> None:
    """
    Raises:
        SubmissionAlreadyApproved: If approving an approved submission
        InvalidSubmissionTransition: If the move is not in ALLOWED_TRANSITIONS
    """
    if target == SubmissionState.APPROVED and submission.state == SubmissionState.APPROVED:
        raise SubmissionAlreadyApproved(submission.id)
    if not can_transition(submission.state, target):
        raise InvalidSubmissionTransition(submission.id, submission.state.value, target.value)


def validate_collaborator_on_design(collaborator: Collaborator, design_id: str) -> None:
    if collaborator.design_id != design_id:
        raise CollaboratorNotOnDesign(collaborator.id, design_id)
