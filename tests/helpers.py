"""
Test Helper Functions - Builders for pipeline test data

Fun fact: The Builder pattern was formalized by the Gang of Four in 1994,
but test data builders were popularized by the growing programmer test
movement in the 2000s - we use them to keep tests readable and maintainable!
"""

from dataclasses import dataclass
from datetime import datetime

from design_pipeline.bids.models import Assignee, AssigneeType, Bid, TaskType
from design_pipeline.designs.models import Complexity, Design
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.pipeline import Pipeline
from design_pipeline.pricing.models import PricingQuote
from design_pipeline.steps.models import ApprovalStep, ApprovalStepType

DESIGNER = "designer-1"
PARTNER = "partner-1"
ADMIN = "admin-1"


def make_bid(
    created_at: datetime,
    bid_id: str = "bid-1",
    assignee_id: str = PARTNER,
    task_types: list[TaskType] | None = None,
) -> Bid:
    """Unsaved bid for pure state machine tests"""
    return Bid(
        id=bid_id,
        quote_id="quote-1",
        created_at=created_at,
        created_by=ADMIN,
        assignee=Assignee(type=AssigneeType.USER, id=assignee_id),
        task_types=task_types or [TaskType.TECHNICAL_DESIGN],
    )


def make_event(
    event_type: DesignEventType,
    created_at: datetime,
    bid_id: str | None = "bid-1",
    design_id: str = "design-1",
) -> DesignEvent:
    return create_design_event(
        design_id=design_id,
        actor_id=ADMIN,
        type=event_type,
        created_at=created_at,
        bid_id=bid_id,
    )


@dataclass
class SeededDesign:
    """A stored design with its steps and latest quote"""

    design: Design
    quote: PricingQuote
    steps: list[ApprovalStep]

    def step(self, step_type: ApprovalStepType) -> ApprovalStep:
        return next(s for s in self.steps if s.type == step_type)


def seed_design(
    pipeline: Pipeline,
    collection_id: str = "collection-1",
    complexity: Complexity = Complexity.SIMPLE,
    processes: list[str] | None = None,
    units: int = 100,
    unit_cost_cents: int = 1_200,
) -> SeededDesign:
    """
    Store a design with default steps and a quote

    Example:
        >>> seeded = seed_design(pipeline, complexity=Complexity.BLANK)
        >>> seeded.step(ApprovalStepType.CHECKOUT).state
        <ApprovalStepState.CURRENT: 'CURRENT'>
    """
    design = pipeline.create_design(
        DESIGNER, collection_id=collection_id, title="Field jacket", complexity=complexity
    )
    quote = pipeline.create_quote(
        design.id, units=units, unit_cost_cents=unit_cost_cents, processes=processes
    )
    return SeededDesign(design=design, quote=quote, steps=pipeline.get_steps(design.id))


def refreshed(pipeline: Pipeline, seeded: SeededDesign) -> SeededDesign:
    """Re-read the steps of a seeded design"""
    return SeededDesign(
        design=seeded.design, quote=seeded.quote, steps=pipeline.get_steps(seeded.design.id)
    )
