"""
Tests for the bid workflow

Covers the partner side of the pipeline: creating bids, accepting and
rejecting them exactly once, removing partners, and pairing accepted
partners with the approval steps their task types unblock.
"""

import threading
from datetime import timedelta

import pytest
from prometheus_client import REGISTRY

from design_pipeline.bids.models import BidRejectionReasons, BidState
from design_pipeline.collaborators.models import CollaboratorRole
from design_pipeline.events.models import DesignEvent, DesignEventType
from design_pipeline.kernel.errors import (
    ActiveBidExists,
    BidNotFound,
    BidNotOpen,
    DuplicateAcceptRejectError,
    MissingRejectionReason,
    NotAssignedToBid,
)
from design_pipeline.kernel.time import FixedTimeProvider
from design_pipeline.pipeline import Pipeline
from design_pipeline.steps.models import ApprovalStepState, ApprovalStepType
from tests.helpers import ADMIN, DESIGNER, PARTNER, SeededDesign, refreshed, seed_design

DECISIONS = [DesignEventType.ACCEPT_SERVICE_BID, DesignEventType.REJECT_SERVICE_BID]


@pytest.fixture
def seeded(pipeline: Pipeline) -> SeededDesign:
    return seed_design(pipeline)


def create_bid(pipeline: Pipeline, seeded: SeededDesign, task_types=("TECHNICAL_DESIGN",)):
    return pipeline.create_bid(
        seeded.quote.id, "USER", PARTNER, list(task_types), actor_id=ADMIN
    )


def duplicate_count(event_type: DesignEventType) -> float:
    value = REGISTRY.get_sample_value(
        "design_pipeline_duplicate_bid_decisions_total", {"event_type": event_type.value}
    )
    return value or 0.0


class TestCreateBid:
    def test_create_bid_opens_it(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        """A new bid has a BID_DESIGN event and a PREVIEW collaborator"""
        bid = create_bid(pipeline, seeded)

        assert pipeline.bid_state(bid.id) == BidState.OPEN
        [event] = pipeline.find_events(bid_id=bid.id)
        assert event.type == DesignEventType.BID_DESIGN
        assert event.target_id == PARTNER
        assert event.target_team_id is None

        with pipeline.transaction(read_only=True) as trx:
            collaborator = pipeline.collaborators.find_by_design_and_user(
                trx, seeded.design.id, PARTNER
            )
        assert collaborator.role == CollaboratorRole.PREVIEW
        assert collaborator.cancelled_at == test_time.now() + timedelta(hours=24)
        assert collaborator.is_active(test_time.now() + timedelta(hours=24))
        assert not collaborator.is_active(test_time.now() + timedelta(hours=24, milliseconds=1))

    def test_team_bid_targets_the_team(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        bid = pipeline.create_bid(
            seeded.quote.id, "TEAM", "team-1", ["PRODUCTION"], actor_id=ADMIN
        )

        [event] = pipeline.find_events(bid_id=bid.id)
        assert event.target_team_id == "team-1"
        assert event.target_id is None

    def test_second_live_bid_for_assignee_is_refused(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        create_bid(pipeline, seeded)

        with pytest.raises(ActiveBidExists):
            create_bid(pipeline, seeded)

    def test_new_bid_allowed_after_rejection(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        first = create_bid(pipeline, seeded)
        pipeline.reject_bid(first.id, PARTNER, BidRejectionReasons(price_too_low=True))

        second = create_bid(pipeline, seeded)

        assert second.id != first.id
        assert pipeline.bid_state(second.id) == BidState.OPEN

    def test_new_bid_allowed_after_expiry(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        create_bid(pipeline, seeded)
        test_time.advance_hours(25)

        second = create_bid(pipeline, seeded)

        assert pipeline.bid_state(second.id) == BidState.OPEN


class TestAcceptBid:
    def test_accept_then_accept_again(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        """Second accept fails with 409 and no second ACCEPT event exists"""
        bid = create_bid(pipeline, seeded)

        pipeline.accept_bid(bid.id, PARTNER)
        assert pipeline.bid_state(bid.id) == BidState.ACCEPTED

        with pytest.raises(DuplicateAcceptRejectError) as exc_info:
            pipeline.accept_bid(bid.id, PARTNER)

        assert exc_info.value.status_code == 409
        assert pipeline.bid_state(bid.id) == BidState.ACCEPTED
        assert len(pipeline.find_events(bid_id=bid.id, types=DECISIONS)) == 1

    def test_accept_promotes_collaborator_to_partner(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        bid = create_bid(pipeline, seeded)

        pipeline.accept_bid(bid.id, PARTNER)

        with pipeline.transaction(read_only=True) as trx:
            collaborator = pipeline.collaborators.find_by_design_and_user(
                trx, seeded.design.id, PARTNER
            )
        assert collaborator.role == CollaboratorRole.PARTNER
        assert collaborator.cancelled_at is None

    def test_only_the_assignee_may_accept(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        bid = create_bid(pipeline, seeded)

        with pytest.raises(NotAssignedToBid):
            pipeline.accept_bid(bid.id, "someone-else")

        assert pipeline.bid_state(bid.id) == BidState.OPEN

    def test_team_member_may_accept(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        pipeline.add_team_user("team-1", "member-1")
        bid = pipeline.create_bid(
            seeded.quote.id, "TEAM", "team-1", ["TECHNICAL_DESIGN"], actor_id=ADMIN
        )

        with pytest.raises(NotAssignedToBid):
            pipeline.accept_bid(bid.id, "outsider")
        pipeline.accept_bid(bid.id, "member-1")

        assert pipeline.bid_state(bid.id) == BidState.ACCEPTED

    def test_expired_bid_cannot_be_accepted(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        bid = create_bid(pipeline, seeded)
        test_time.advance(timedelta(hours=24, milliseconds=1))

        with pytest.raises(BidNotOpen):
            pipeline.accept_bid(bid.id, PARTNER)

    def test_bid_at_exactly_24_hours_can_be_accepted(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        bid = create_bid(pipeline, seeded)
        test_time.advance_hours(24)

        pipeline.accept_bid(bid.id, PARTNER)

        assert pipeline.bid_state(bid.id) == BidState.ACCEPTED

    def test_unknown_bid(self, pipeline: Pipeline) -> None:
        with pytest.raises(BidNotFound):
            pipeline.accept_bid("no-such-bid", PARTNER)

    def test_concurrent_accepts_yield_one_decision(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        """Two simultaneous accepts: exactly one wins, the other gets 409"""
        bid = create_bid(pipeline, seeded)
        barrier = threading.Barrier(2)
        outcomes: list[str] = []
        lock = threading.Lock()

        def accept() -> None:
            barrier.wait()
            try:
                pipeline.accept_bid(bid.id, PARTNER)
                result = "accepted"
            except DuplicateAcceptRejectError:
                result = "duplicate"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=accept) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["accepted", "duplicate"]
        assert len(pipeline.find_events(bid_id=bid.id, types=DECISIONS)) == 1

    def test_constraint_catches_a_stale_state_check(
        self,
        pipeline: Pipeline,
        seeded: SeededDesign,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """
        When the pre-check reads a stale OPEN state, the unique index still
        refuses the second decision and the whole transaction rolls back
        """
        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)
        before = pipeline.find_events(design_id=seeded.design.id)
        duplicates = duplicate_count(DesignEventType.REJECT_SERVICE_BID)

        monkeypatch.setattr(
            "design_pipeline.workflow.bids.determine_state_from_events",
            lambda *args, **kwargs: BidState.OPEN,
        )
        with pytest.raises(DuplicateAcceptRejectError):
            pipeline.reject_bid(bid.id, PARTNER, BidRejectionReasons(other=True))

        assert pipeline.find_events(design_id=seeded.design.id) == before
        assert duplicate_count(DesignEventType.REJECT_SERVICE_BID) == duplicates + 1
        with pipeline.transaction(read_only=True) as trx:
            assert pipeline.bids.find_rejection(trx, bid.id) is None

    def test_accept_publishes_after_commit(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        received: list[DesignEvent] = []
        pipeline.subscribe(DesignEventType.ACCEPT_SERVICE_BID, received.append)
        bid = create_bid(pipeline, seeded)

        pipeline.accept_bid(bid.id, PARTNER)
        with pytest.raises(DuplicateAcceptRejectError):
            pipeline.accept_bid(bid.id, PARTNER)

        assert [e.bid_id for e in received] == [bid.id]


class TestPartnerPairing:
    def test_accept_before_checkout_unblocks_step(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        """The paired step leaves BLOCKED but checkout is still CURRENT"""
        bid = create_bid(pipeline, seeded)

        events = pipeline.accept_bid(bid.id, PARTNER)

        steps = refreshed(pipeline, seeded)
        technical = steps.step(ApprovalStepType.TECHNICAL_DESIGN)
        assert technical.state == ApprovalStepState.UNSTARTED
        assert technical.reason is None
        assert steps.step(ApprovalStepType.CHECKOUT).state == ApprovalStepState.CURRENT
        assert steps.step(ApprovalStepType.SAMPLE).state == ApprovalStepState.BLOCKED

        pairing = [e for e in events if e.type == DesignEventType.STEP_PARTNER_PAIRING]
        assert len(pairing) == 1
        assert pairing[0].approval_step_id == technical.id
        assert pairing[0].task_type_id == "TECHNICAL_DESIGN"

    def test_accept_after_checkout_starts_step(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        """With checkout completed, the paired step becomes CURRENT"""
        pipeline.commit_quote(seeded.design.collection_id, DESIGNER)
        waiting = refreshed(pipeline, seeded).step(ApprovalStepType.TECHNICAL_DESIGN)
        assert waiting.state == ApprovalStepState.UNSTARTED

        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)

        technical = refreshed(pipeline, seeded).step(ApprovalStepType.TECHNICAL_DESIGN)
        assert technical.state == ApprovalStepState.CURRENT
        assert technical.started_at is not None

    def test_checkout_after_pairing_starts_step(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)

        pipeline.commit_quote(seeded.design.collection_id, DESIGNER)

        technical = refreshed(pipeline, seeded).step(ApprovalStepType.TECHNICAL_DESIGN)
        assert technical.state == ApprovalStepState.CURRENT

    def test_production_task_pairs_sample_step(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        bid = create_bid(pipeline, seeded, task_types=("TECHNICAL_DESIGN", "PRODUCTION"))

        events = pipeline.accept_bid(bid.id, PARTNER)

        steps = refreshed(pipeline, seeded)
        paired = {e.approval_step_id for e in events if e.approval_step_id}
        assert paired == {
            steps.step(ApprovalStepType.TECHNICAL_DESIGN).id,
            steps.step(ApprovalStepType.SAMPLE).id,
        }
        assert steps.step(ApprovalStepType.SAMPLE).state == ApprovalStepState.UNSTARTED


class TestRejectBid:
    def test_reject_requires_a_reason(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        bid = create_bid(pipeline, seeded)

        with pytest.raises(MissingRejectionReason):
            pipeline.reject_bid(bid.id, PARTNER, BidRejectionReasons(notes="   "))

        assert pipeline.bid_state(bid.id) == BidState.OPEN

    def test_reject_records_reasons_and_leaves_steps(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        bid = create_bid(pipeline, seeded)

        pipeline.reject_bid(
            bid.id,
            PARTNER,
            BidRejectionReasons(deadline_too_short=True, notes="Need two more weeks"),
        )

        assert pipeline.bid_state(bid.id) == BidState.REJECTED
        with pipeline.transaction(read_only=True) as trx:
            rejection = pipeline.bids.find_rejection(trx, bid.id)
            collaborator = pipeline.collaborators.find_by_design_and_user(
                trx, seeded.design.id, PARTNER
            )
        assert rejection.reasons.deadline_too_short
        assert rejection.reasons.notes == "Need two more weeks"
        assert collaborator.role == CollaboratorRole.PREVIEW
        assert collaborator.cancelled_at == test_time.now()
        assert refreshed(pipeline, seeded).steps == seeded.steps

    def test_reject_keeps_assignments_of_the_preview_collaborator(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        """The preview collaborator is cancelled, not deleted, so assignments survive"""
        bid = create_bid(pipeline, seeded)
        with pipeline.transaction(read_only=True) as trx:
            preview = pipeline.collaborators.find_by_design_and_user(
                trx, seeded.design.id, PARTNER
            )
        technical = seeded.step(ApprovalStepType.TECHNICAL_DESIGN)
        pipeline.assign_step(technical.id, preview.id, ADMIN)
        test_time.advance_hours(1)

        pipeline.reject_bid(bid.id, PARTNER, BidRejectionReasons(price_too_low=True))

        assert pipeline.bid_state(bid.id) == BidState.REJECTED
        assert refreshed(pipeline, seeded).step(technical.type).collaborator_id == preview.id
        with pipeline.transaction(read_only=True) as trx:
            cancelled = pipeline.collaborators.get(trx, preview.id)
        assert not cancelled.is_active(test_time.now() + timedelta(milliseconds=1))

    def test_reject_after_accept_is_refused(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)

        with pytest.raises(DuplicateAcceptRejectError):
            pipeline.reject_bid(bid.id, PARTNER, BidRejectionReasons(other=True))


class TestRemovePartner:
    def test_remove_requires_accepted_bid(self, pipeline: Pipeline, seeded: SeededDesign) -> None:
        bid = create_bid(pipeline, seeded)

        with pytest.raises(BidNotOpen):
            pipeline.remove_partner(bid.id, ADMIN)

    def test_remove_accepted_partner(
        self, pipeline: Pipeline, seeded: SeededDesign, test_time: FixedTimeProvider
    ) -> None:
        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)

        [event] = pipeline.remove_partner(bid.id, ADMIN)

        assert event.type == DesignEventType.REMOVE_PARTNER
        assert event.target_id == PARTNER
        assert pipeline.bid_state(bid.id) == BidState.REMOVED
        with pipeline.transaction(read_only=True) as trx:
            collaborator = pipeline.collaborators.find_by_design_and_user(
                trx, seeded.design.id, PARTNER
            )
        assert collaborator.cancelled_at == test_time.now()

    def test_removed_bid_cannot_be_decided(
        self, pipeline: Pipeline, seeded: SeededDesign
    ) -> None:
        bid = create_bid(pipeline, seeded)
        pipeline.accept_bid(bid.id, PARTNER)
        pipeline.remove_partner(bid.id, ADMIN)

        with pytest.raises(BidNotOpen):
            pipeline.accept_bid(bid.id, PARTNER)
