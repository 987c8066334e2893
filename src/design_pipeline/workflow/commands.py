"""
Workflow Commands - intentions to change the pipeline

Commands are validated on construction; the workflow classes turn them into
design events and step/submission changes inside one transaction.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from design_pipeline.bids.models import Assignee, BidRejectionReasons, TaskType
from design_pipeline.submissions.models import SubmissionState


class CreateBid(BaseModel):
    """
    Offer a quote's work to a partner

    Requirements:
    - Quote must exist
    - The assignee holds no live bid on the same quote
    """

    quote_id: str
    assignee: Assignee
    task_types: list[TaskType] = Field(..., min_length=1)
    bid_price_cents: int = Field(default=0, ge=0)
    due_date: datetime | None = None
    description: str | None = None


class AcceptBid(BaseModel):
    bid_id: str


class RejectBid(BaseModel):
    bid_id: str
    reasons: BidRejectionReasons


class RemovePartner(BaseModel):
    """Take an accepted partner off the design (ACCEPTED → REMOVED)"""

    bid_id: str


class CommitCostInputs(BaseModel):
    collection_id: str


class CommitQuote(BaseModel):
    """Check out a collection: completes every design's checkout step"""

    collection_id: str


class ReverseCheckout(BaseModel):
    collection_id: str


class RejectCollection(BaseModel):
    collection_id: str


class CompleteStep(BaseModel):
    step_id: str


class ReopenStep(BaseModel):
    step_id: str


class AssignStep(BaseModel):
    """Assign a step to a collaborator (None unassigns)"""

    step_id: str
    collaborator_id: str | None = None


class AssignSubmission(BaseModel):
    """Assign a submission to a collaborator or a team user (neither unassigns)"""

    submission_id: str
    collaborator_id: str | None = None
    team_user_id: str | None = None


class CreateSubmission(BaseModel):
    step_id: str
    title: str = Field(..., min_length=1, max_length=200)


class TransitionSubmission(BaseModel):
    submission_id: str
    state: SubmissionState
