"""
Tests for bid state derivation

The state machine is a pure function of (bid, events, now), so these tests
need no database at all.
"""

from datetime import datetime, timedelta, timezone

import pytest

from design_pipeline.bids.models import BidState
from design_pipeline.bids.state_machine import determine_state_from_events, is_expired
from design_pipeline.events.models import DesignEventType
from tests.helpers import make_bid, make_event

CREATED = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestExpiry:
    def test_not_expired_after_23_hours(self) -> None:
        bid = make_bid(CREATED)
        assert not is_expired(bid, CREATED + timedelta(hours=23))

    def test_not_expired_at_exactly_24_hours(self) -> None:
        """The window is exclusive: a bid exactly 24h old is still live"""
        bid = make_bid(CREATED)
        assert not is_expired(bid, CREATED + timedelta(hours=24))

    def test_expired_one_millisecond_after_24_hours(self) -> None:
        bid = make_bid(CREATED)
        assert is_expired(bid, CREATED + timedelta(hours=24, milliseconds=1))

    def test_custom_expiration_window(self) -> None:
        bid = make_bid(CREATED)
        assert is_expired(bid, CREATED + timedelta(hours=3), expiration=timedelta(hours=2))

    def test_naive_created_at_is_read_as_utc(self) -> None:
        """Timestamps without an offset are UTC, so they compare with aware clocks"""
        bid = make_bid(datetime(2025, 1, 15, 12, 0, 0))

        assert bid.created_at == CREATED
        assert not is_expired(bid, CREATED + timedelta(hours=24))
        assert is_expired(bid, CREATED + timedelta(hours=25))

    def test_naive_now_is_read_as_utc(self) -> None:
        bid = make_bid(CREATED)
        assert is_expired(bid, datetime(2025, 1, 16, 13, 0, 0))

    def test_naive_bid_derives_state(self) -> None:
        bid = make_bid(datetime(2025, 1, 15, 12, 0, 0))
        events = [make_event(DesignEventType.BID_DESIGN, CREATED)]
        later = CREATED + timedelta(hours=25)
        assert determine_state_from_events(bid, events, later) == BidState.EXPIRED


class TestDerivation:
    def test_no_events_is_initial(self) -> None:
        bid = make_bid(CREATED)
        assert determine_state_from_events(bid, [], CREATED) == BidState.INITIAL

    def test_bid_design_is_open(self) -> None:
        bid = make_bid(CREATED)
        events = [make_event(DesignEventType.BID_DESIGN, CREATED)]
        assert determine_state_from_events(bid, events, CREATED) == BidState.OPEN

    def test_open_bid_expires(self) -> None:
        bid = make_bid(CREATED)
        events = [make_event(DesignEventType.BID_DESIGN, CREATED)]
        later = CREATED + timedelta(hours=25)
        assert determine_state_from_events(bid, events, later) == BidState.EXPIRED

    def test_initial_bid_expires(self) -> None:
        bid = make_bid(CREATED)
        later = CREATED + timedelta(days=2)
        assert determine_state_from_events(bid, [], later) == BidState.EXPIRED

    @pytest.mark.parametrize(
        ("decision", "expected"),
        [
            (DesignEventType.ACCEPT_SERVICE_BID, BidState.ACCEPTED),
            (DesignEventType.REJECT_SERVICE_BID, BidState.REJECTED),
        ],
    )
    def test_decisions_beat_the_clock(
        self, decision: DesignEventType, expected: BidState
    ) -> None:
        """A decided bid never becomes EXPIRED, however old it is"""
        bid = make_bid(CREATED)
        events = [
            make_event(DesignEventType.BID_DESIGN, CREATED),
            make_event(decision, CREATED + timedelta(hours=1)),
        ]
        month_later = CREATED + timedelta(days=30)
        assert determine_state_from_events(bid, events, month_later) == expected

    def test_removed_dominates_accepted(self) -> None:
        bid = make_bid(CREATED)
        events = [
            make_event(DesignEventType.BID_DESIGN, CREATED),
            make_event(DesignEventType.ACCEPT_SERVICE_BID, CREATED),
            make_event(DesignEventType.REMOVE_PARTNER, CREATED),
        ]
        assert determine_state_from_events(bid, events, CREATED) == BidState.REMOVED

    def test_accepted_dominates_rejected(self) -> None:
        """Precedence does not depend on event order"""
        bid = make_bid(CREATED)
        events = [
            make_event(DesignEventType.ACCEPT_SERVICE_BID, CREATED),
            make_event(DesignEventType.REJECT_SERVICE_BID, CREATED - timedelta(hours=1)),
        ]
        assert determine_state_from_events(bid, events, CREATED) == BidState.ACCEPTED
        assert determine_state_from_events(bid, events[::-1], CREATED) == BidState.ACCEPTED

    def test_events_of_other_bids_are_ignored(self) -> None:
        bid = make_bid(CREATED)
        events = [
            make_event(DesignEventType.BID_DESIGN, CREATED),
            make_event(DesignEventType.ACCEPT_SERVICE_BID, CREATED, bid_id="other-bid"),
        ]
        assert determine_state_from_events(bid, events, CREATED) == BidState.OPEN

    def test_events_without_bid_id_count(self) -> None:
        """Older removal events were recorded without a bid id"""
        bid = make_bid(CREATED)
        events = [
            make_event(DesignEventType.ACCEPT_SERVICE_BID, CREATED),
            make_event(DesignEventType.REMOVE_PARTNER, CREATED, bid_id=None),
        ]
        assert determine_state_from_events(bid, events, CREATED) == BidState.REMOVED

    def test_derivation_is_deterministic(self) -> None:
        """Same inputs, same state: nothing is cached between calls"""
        bid = make_bid(CREATED)
        events = [make_event(DesignEventType.BID_DESIGN, CREATED)]
        now = CREATED + timedelta(hours=2)
        states = {determine_state_from_events(bid, events, now) for _ in range(5)}
        assert states == {BidState.OPEN}
