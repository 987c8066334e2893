"""
Bids - offers of a quote's work to a partner

Bid state is a projection over design events (see state_machine).
"""

from design_pipeline.bids.models import (
    Assignee,
    AssigneeType,
    Bid,
    BidRejection,
    BidRejectionReasons,
    BidState,
    TaskType,
)
from design_pipeline.bids.repository import BidRepository
from design_pipeline.bids.state_machine import determine_state_from_events, is_expired

__all__ = [
    "Assignee",
    "AssigneeType",
    "Bid",
    "BidRejection",
    "BidRejectionReasons",
    "BidRepository",
    "BidState",
    "TaskType",
    "determine_state_from_events",
    "is_expired",
]
