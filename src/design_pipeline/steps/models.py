"""
Approval Step Models

A design moves through an ordered list of approval steps. The ordering column
drives every cascade: "next step" always means the next non-skipped step by
ordering.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from design_pipeline.kernel.database import Transaction
    from design_pipeline.steps.repository import ApprovalStepRepository


class ApprovalStepState(str, Enum):
    """
    Step lifecycle states

    BLOCKED → UNSTARTED → CURRENT → COMPLETED, with COMPLETED → CURRENT on
    reopen. SKIP steps never take part in cascades.
    """

    BLOCKED = "BLOCKED"  # waiting on an external precondition (partner pairing)
    UNSTARTED = "UNSTARTED"
    CURRENT = "CURRENT"
    COMPLETED = "COMPLETED"
    SKIP = "SKIP"


class ApprovalStepType(str, Enum):
    CHECKOUT = "CHECKOUT"
    TECHNICAL_DESIGN = "TECHNICAL_DESIGN"
    SAMPLE = "SAMPLE"
    PRODUCTION = "PRODUCTION"
    SHIPPING = "SHIPPING"

    def requires_partner_pairing(self) -> bool:
        """Steps that cannot start until a partner accepted a bid for them"""
        return self in (ApprovalStepType.TECHNICAL_DESIGN, ApprovalStepType.SAMPLE)


PENDING_PAIRING_REASON = "Pending partner pairing"


class ApprovalStep(BaseModel):
    """
    One approval step of a design

    Attributes:
        ordering: Position in the pipeline, unique per design
        reason: Why the step is BLOCKED (cleared when it unblocks)
        started_at / completed_at: Stamped by the repository on state changes
        collaborator_id / team_user_id: Step assignee, at most one
    """

    id: str
    design_id: str
    title: str
    ordering: int = Field(..., ge=0)
    type: ApprovalStepType
    state: ApprovalStepState
    reason: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    due_at: datetime | None = None
    collaborator_id: str | None = None
    team_user_id: str | None = None
    created_at: datetime

    @property
    def is_skipped(self) -> bool:
        return self.state == ApprovalStepState.SKIP


@dataclass(frozen=True)
class StepChange:
    """What a step listener receives after every repository update"""

    trx: Transaction
    before: ApprovalStep
    updated: ApprovalStep
    repository: ApprovalStepRepository

    def entered(self, state: ApprovalStepState) -> bool:
        return self.before.state != state and self.updated.state == state

    def moved(self, from_state: ApprovalStepState, to_state: ApprovalStepState) -> bool:
        return self.before.state == from_state and self.updated.state == to_state
