"""
Workflow Policy - tunable parameters of the design pipeline

Anything that is a business constant rather than a rule lives here, so a
deployment (or a test) can change it without touching workflow code.
"""

from datetime import timedelta

from pydantic import BaseModel, Field


class WorkflowPolicy(BaseModel):
    """
    Configuration for bid, costing and reversal workflows

    Defaults match production behaviour: bids expire after 24 hours and
    committed cost inputs stay valid for two weeks.
    """

    bid_expiration_hours: int = Field(
        default=24,
        ge=1,
        description="Hours after creation at which an undecided bid expires",
    )

    cost_input_expiration_days: int = Field(
        default=14,
        ge=1,
        description="Days a committed cost input remains valid",
    )

    reversal_credit_note_reason: str = Field(
        default="Reversed",
        min_length=1,
        description="Reason recorded on credit notes created by a checkout reversal",
    )

    busy_timeout_ms: int = Field(
        default=30_000,
        ge=0,
        description="How long a writer waits for the database write lock",
    )

    model_config = {"frozen": True}

    @property
    def bid_expiration(self) -> timedelta:
        return timedelta(hours=self.bid_expiration_hours)

    @property
    def cost_input_expiration(self) -> timedelta:
        return timedelta(days=self.cost_input_expiration_days)
