"""
Design events - immutable facts in the design's history

A DesignEvent is never updated or deleted. Bid state is derived from these
events, and every step or submission change leaves one behind for audit.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from design_pipeline.kernel.ids import generate_id


class DesignEventType(str, Enum):
    """Closed set of design event types"""

    # Designer
    SUBMIT_DESIGN = "SUBMIT_DESIGN"
    COMMIT_QUOTE = "COMMIT_QUOTE"

    # Costing and bidding
    BID_DESIGN = "BID_DESIGN"
    REJECT_DESIGN = "REJECT_DESIGN"
    COMMIT_COST_INPUTS = "COMMIT_COST_INPUTS"
    REMOVE_PARTNER = "REMOVE_PARTNER"
    COMMIT_PARTNER_PAIRING = "COMMIT_PARTNER_PAIRING"
    COSTING_EXPIRATION = "COSTING_EXPIRATION"

    # Partner
    ACCEPT_SERVICE_BID = "ACCEPT_SERVICE_BID"
    REJECT_SERVICE_BID = "REJECT_SERVICE_BID"

    # Shipment tracking
    TRACKING_CREATION = "TRACKING_CREATION"
    TRACKING_UPDATE = "TRACKING_UPDATE"

    # Approval steps and submissions
    REVISION_REQUEST = "REVISION_REQUEST"
    STEP_ASSIGNMENT = "STEP_ASSIGNMENT"
    STEP_UNASSIGNMENT = "STEP_UNASSIGNMENT"
    STEP_SUBMISSION_APPROVAL = "STEP_SUBMISSION_APPROVAL"
    STEP_SUBMISSION_ASSIGNMENT = "STEP_SUBMISSION_ASSIGNMENT"
    STEP_SUBMISSION_UNASSIGNMENT = "STEP_SUBMISSION_UNASSIGNMENT"
    STEP_SUBMISSION_RE_REVIEW_REQUEST = "STEP_SUBMISSION_RE_REVIEW_REQUEST"
    STEP_SUBMISSION_UNSTARTED = "STEP_SUBMISSION_UNSTARTED"
    STEP_COMPLETE = "STEP_COMPLETE"
    STEP_REOPEN = "STEP_REOPEN"
    STEP_PARTNER_PAIRING = "STEP_PARTNER_PAIRING"

    # Reversals
    REVERSE_CHECKOUT = "REVERSE_CHECKOUT"


# Events shown in a step's activity stream
ACTIVITY_STREAM_EVENTS: frozenset[DesignEventType] = frozenset(
    {
        DesignEventType.REVISION_REQUEST,
        DesignEventType.STEP_ASSIGNMENT,
        DesignEventType.STEP_UNASSIGNMENT,
        DesignEventType.STEP_SUBMISSION_APPROVAL,
        DesignEventType.STEP_SUBMISSION_ASSIGNMENT,
        DesignEventType.STEP_SUBMISSION_UNASSIGNMENT,
        DesignEventType.STEP_SUBMISSION_RE_REVIEW_REQUEST,
        DesignEventType.STEP_SUBMISSION_UNSTARTED,
        DesignEventType.STEP_COMPLETE,
        DesignEventType.STEP_PARTNER_PAIRING,
        DesignEventType.STEP_REOPEN,
        DesignEventType.SUBMIT_DESIGN,
        DesignEventType.COMMIT_QUOTE,
        DesignEventType.COMMIT_COST_INPUTS,
        DesignEventType.COSTING_EXPIRATION,
        DesignEventType.TRACKING_CREATION,
        DesignEventType.TRACKING_UPDATE,
    }
)

# At most one of these may exist per bid (one_accept_or_reject_per_bid)
BID_DECISION_EVENTS: frozenset[DesignEventType] = frozenset(
    {DesignEventType.ACCEPT_SERVICE_BID, DesignEventType.REJECT_SERVICE_BID}
)


class DesignEvent(BaseModel):
    """
    One entry of the append-only design event log

    Only design_id, actor_id and type are always present; the optional
    references point at whatever the event is about (a bid, a step, a
    submission, a quote).
    """

    id: str = Field(..., description="Unique event identifier")
    created_at: datetime = Field(..., description="UTC ordering key")
    actor_id: str = Field(..., description="User who caused the event")
    target_id: str | None = Field(default=None, description="User the event is about")
    target_team_id: str | None = Field(default=None, description="Team the event is about")
    design_id: str
    type: DesignEventType
    bid_id: str | None = None
    quote_id: str | None = None
    approval_step_id: str | None = None
    approval_submission_id: str | None = None
    comment_id: str | None = None
    task_type_id: str | None = None

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "6c1f0d64-0f2e-4c7f-9c0e-7f0a3b1d2e4f",
                    "created_at": "2025-01-15T12:00:00.000000+00:00",
                    "actor_id": "user-partner",
                    "design_id": "design-1",
                    "type": "ACCEPT_SERVICE_BID",
                    "bid_id": "bid-1",
                    "quote_id": "quote-1",
                }
            ]
        },
    }


def create_design_event(
    *,
    design_id: str,
    actor_id: str,
    type: DesignEventType,
    created_at: datetime,
    event_id: str | None = None,
    target_id: str | None = None,
    target_team_id: str | None = None,
    bid_id: str | None = None,
    quote_id: str | None = None,
    approval_step_id: str | None = None,
    approval_submission_id: str | None = None,
    comment_id: str | None = None,
    task_type_id: str | None = None,
) -> DesignEvent:
    """Factory for design events; a fresh id is generated unless given"""
    return DesignEvent(
        id=event_id or generate_id(),
        created_at=created_at,
        actor_id=actor_id,
        target_id=target_id,
        target_team_id=target_team_id,
        design_id=design_id,
        type=type,
        bid_id=bid_id,
        quote_id=quote_id,
        approval_step_id=approval_step_id,
        approval_submission_id=approval_submission_id,
        comment_id=comment_id,
        task_type_id=task_type_id,
    )
