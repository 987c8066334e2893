"""
Bid Domain Models

A bid offers a quote's work (technical design and/or production) to one
partner, a user or a team. Its lifecycle state is deliberately absent from
the model: it is derived from design events every time it is read.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from design_pipeline.kernel.time import ensure_utc


class BidState(str, Enum):
    """
    Derived bid lifecycle

    INITIAL → OPEN → {ACCEPTED | REJECTED}; undecided bids EXPIRE by time;
    ACCEPTED → REMOVED when the partner is taken off the design.
    """

    INITIAL = "INITIAL"
    OPEN = "OPEN"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    REMOVED = "REMOVED"

    @property
    def is_decided(self) -> bool:
        return self in (BidState.ACCEPTED, BidState.REJECTED)

    @property
    def is_live(self) -> bool:
        """States that block another bid to the same assignee on the same quote"""
        return self in (BidState.INITIAL, BidState.OPEN, BidState.ACCEPTED)


class AssigneeType(str, Enum):
    USER = "USER"
    TEAM = "TEAM"


class TaskType(str, Enum):
    """Work a bid covers; each unblocks one approval step on acceptance"""

    TECHNICAL_DESIGN = "TECHNICAL_DESIGN"  # unblocks the Technical Design step
    PRODUCTION = "PRODUCTION"  # unblocks the Sample step


class Assignee(BaseModel):
    type: AssigneeType
    id: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class Bid(BaseModel):
    id: str
    quote_id: str
    created_at: datetime
    created_by: str
    due_date: datetime | None = None
    description: str | None = None
    bid_price_cents: int = Field(default=0, ge=0)
    assignee: Assignee
    task_types: list[TaskType] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def created_at_as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class BidRejectionReasons(BaseModel):
    """Why a partner turned a bid down; at least one reason is required"""

    price_too_low: bool = False
    deadline_too_short: bool = False
    missing_information: bool = False
    other: bool = False
    notes: str | None = None

    @model_validator(mode="after")
    def _strip_notes(self) -> "BidRejectionReasons":
        if self.notes is not None and not self.notes.strip():
            self.notes = None
        return self

    @property
    def has_reason(self) -> bool:
        return (
            self.price_too_low
            or self.deadline_too_short
            or self.missing_information
            or self.other
            or self.notes is not None
        )


class BidRejection(BaseModel):
    id: str
    bid_id: str
    created_at: datetime
    created_by: str
    reasons: BidRejectionReasons
