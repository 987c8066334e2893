"""
Bid State Derivation - pure functions over (bid, events)

Bid state is never stored. It is recomputed from the design event log on
every read, so there is nothing to keep in sync and nothing to drift.

Precedence, highest first:
    REMOVED > ACCEPTED > REJECTED > EXPIRED > OPEN > INITIAL

Human decisions always beat the clock: an accepted bid that is a month old
is ACCEPTED, never EXPIRED. Expiry only applies while a bid is undecided.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from design_pipeline.bids.models import Bid, BidState
from design_pipeline.events.models import DesignEvent, DesignEventType
from design_pipeline.kernel.time import ensure_utc

DEFAULT_EXPIRATION = timedelta(hours=24)


def is_expired(
    bid: Bid,
    now: datetime | None = None,
    expiration: timedelta = DEFAULT_EXPIRATION,
) -> bool:
    """
    True when strictly more than `expiration` has passed since the bid was created

    A bid exactly 24 hours old is still live; one microsecond later it is
    expired.

    Args:
        bid: Bid to check
        now: Evaluation time (defaults to the system clock)
        expiration: Expiry window (WorkflowPolicy.bid_expiration)
    """
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    return now - ensure_utc(bid.created_at) > expiration


def determine_state_from_events(
    bid: Bid,
    events: Iterable[DesignEvent],
    now: datetime | None = None,
    expiration: timedelta = DEFAULT_EXPIRATION,
) -> BidState:
    """
    Reduce a bid's events to its current state

    Events of other bids are ignored; events without a bid_id count, since
    older removal and rejection events were recorded without one.

    Args:
        bid: The bid
        events: Design events in any order
        now: Evaluation time for expiry (defaults to the system clock)
        expiration: Expiry window

    Returns:
        The derived BidState
    """
    types = {
        event.type
        for event in events
        if event.bid_id is None or event.bid_id == bid.id
    }

    if DesignEventType.REMOVE_PARTNER in types:
        return BidState.REMOVED
    if DesignEventType.ACCEPT_SERVICE_BID in types:
        return BidState.ACCEPTED
    if DesignEventType.REJECT_SERVICE_BID in types:
        return BidState.REJECTED
    if is_expired(bid, now, expiration):
        return BidState.EXPIRED
    if DesignEventType.BID_DESIGN in types:
        return BidState.OPEN
    return BidState.INITIAL
