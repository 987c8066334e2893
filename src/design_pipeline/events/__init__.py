"""
Events - the append-only design event log

Every other package writes its audit trail here, and bid state is read back
from it.
"""

from design_pipeline.events.models import (
    ACTIVITY_STREAM_EVENTS,
    BID_DECISION_EVENTS,
    DesignEvent,
    DesignEventType,
    create_design_event,
)
from design_pipeline.events.store import DesignEventStore

__all__ = [
    "ACTIVITY_STREAM_EVENTS",
    "BID_DECISION_EVENTS",
    "DesignEvent",
    "DesignEventType",
    "DesignEventStore",
    "create_design_event",
]
