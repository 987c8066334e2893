"""
Pricing Quote Models

Quotes are produced by the external pricing engine and are immutable here.
The workflow reads them (bids, checkout invoices, sample submissions) but
never recalculates them.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class PricingQuote(BaseModel):
    """
    Attributes:
        units: Ordered units
        unit_cost_cents: Price per unit in cents
        processes: Decoration processes (e.g. "Screen print"), each needs a trial sample
    """

    id: str
    design_id: str
    units: int = Field(..., ge=0)
    unit_cost_cents: int = Field(..., ge=0)
    processes: list[str] = Field(default_factory=list)
    created_at: datetime

    model_config = {"frozen": True}

    @property
    def total_cents(self) -> int:
        return self.units * self.unit_cost_cents
