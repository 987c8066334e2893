"""
Bid Workflow - creating, deciding and withdrawing partner bids

Every method runs inside the caller's transaction and returns the design
events it appended. Bid state is derived from the event log on each call;
the one_accept_or_reject_per_bid index is the final word when two decisions
race each other.
"""

from design_pipeline.bids.models import (
    AssigneeType,
    Bid,
    BidRejection,
    BidState,
    TaskType,
)
from design_pipeline.bids.repository import BidRepository
from design_pipeline.bids.state_machine import determine_state_from_events
from design_pipeline.collaborators.models import Collaborator, CollaboratorRole
from design_pipeline.collaborators.repository import CollaboratorRepository, TeamUserRepository
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.events.store import DesignEventStore
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import (
    ActiveBidExists,
    DuplicateAcceptRejectError,
    NotAssignedToBid,
)
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.metrics import duplicate_bid_decisions_total
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.pricing.repository import PricingQuoteRepository
from design_pipeline.steps.models import ApprovalStepState, ApprovalStepType
from design_pipeline.steps.repository import ApprovalStepRepository
from design_pipeline.workflow.commands import AcceptBid, CreateBid, RejectBid, RemovePartner
from design_pipeline.workflow.invariants import (
    validate_bid_decidable,
    validate_bid_removable,
    validate_rejection_reasons,
)

logger = get_logger(__name__)

# Approval step each task type pairs a partner with
PAIRED_STEP_TYPES: dict[TaskType, ApprovalStepType] = {
    TaskType.TECHNICAL_DESIGN: ApprovalStepType.TECHNICAL_DESIGN,
    TaskType.PRODUCTION: ApprovalStepType.SAMPLE,
}


class BidWorkflow:
    """
    Bid operations

    Requirements shared by accept and reject:
    - The actor is the assignee (the user, or a member of the team)
    - The bid is undecided, not removed and not expired
    """

    def __init__(
        self,
        events: DesignEventStore,
        bids: BidRepository,
        quotes: PricingQuoteRepository,
        collaborators: CollaboratorRepository,
        team_users: TeamUserRepository,
        steps: ApprovalStepRepository,
        time_provider: TimeProvider,
        policy: WorkflowPolicy,
    ) -> None:
        self.events = events
        self.bids = bids
        self.quotes = quotes
        self.collaborators = collaborators
        self.team_users = team_users
        self.steps = steps
        self.time_provider = time_provider
        self.policy = policy

    def bid_state(self, trx: Transaction, bid: Bid) -> BidState:
        return determine_state_from_events(
            bid,
            self.events.find_by_bid(trx, bid.id),
            self.time_provider.now(),
            self.policy.bid_expiration,
        )

    def create_bid(self, trx: Transaction, command: CreateBid, actor_id: str) -> Bid:
        """
        Offer a quote's work to a partner

        The quote row is locked first, so two bids for the same assignee and
        quote serialize and the second one sees the first.

        Raises:
            QuoteNotFound: If the quote does not exist
            ActiveBidExists: If the assignee holds an INITIAL, OPEN or ACCEPTED bid
        """
        self.quotes.lock_for_update(trx, command.quote_id)
        quote = self.quotes.get(trx, command.quote_id)

        for existing in self.bids.find_by_quote_and_assignee(
            trx, command.quote_id, command.assignee
        ):
            if self.bid_state(trx, existing).is_live:
                raise ActiveBidExists(command.quote_id, command.assignee.id)

        now = self.time_provider.now()
        bid = self.bids.create(
            trx,
            Bid(
                id=generate_id(),
                quote_id=quote.id,
                created_at=now,
                created_by=actor_id,
                due_date=command.due_date,
                description=command.description,
                bid_price_cents=command.bid_price_cents,
                assignee=command.assignee,
                task_types=command.task_types,
            ),
        )
        self.events.append(
            trx,
            create_design_event(
                design_id=quote.design_id,
                actor_id=actor_id,
                type=DesignEventType.BID_DESIGN,
                created_at=now,
                bid_id=bid.id,
                quote_id=quote.id,
                **self._target(bid),
            ),
        )

        is_user = bid.assignee.type == AssigneeType.USER
        self.collaborators.create(
            trx,
            Collaborator(
                id=generate_id(),
                design_id=quote.design_id,
                user_id=bid.assignee.id if is_user else None,
                team_id=None if is_user else bid.assignee.id,
                role=CollaboratorRole.PREVIEW,
                created_at=now,
                cancelled_at=now + self.policy.bid_expiration,
            ),
        )
        return bid

    def accept_bid(self, trx: Transaction, command: AcceptBid, actor_id: str) -> list[DesignEvent]:
        """
        Accept a bid and pair the partner with the steps it covers

        Returns:
            Events appended: BID_DESIGN (only if the bid never had one),
            ACCEPT_SERVICE_BID and one STEP_PARTNER_PAIRING per paired step

        Raises:
            BidNotFound: If the bid does not exist
            NotAssignedToBid: If the actor is not the assignee
            DuplicateAcceptRejectError: If the bid was already decided
            BidNotOpen: If the bid was removed or has expired
        """
        bid = self.bids.get(trx, command.bid_id)
        self._validate_assignee(trx, bid, actor_id)

        existing = self.events.find_by_bid(trx, bid.id)
        validate_bid_decidable(
            bid,
            determine_state_from_events(
                bid, existing, self.time_provider.now(), self.policy.bid_expiration
            ),
        )

        quote = self.quotes.get(trx, bid.quote_id)
        now = self.time_provider.now()
        appended: list[DesignEvent] = []

        if not any(e.type == DesignEventType.BID_DESIGN for e in existing):
            appended.append(
                self.events.append(
                    trx,
                    create_design_event(
                        design_id=quote.design_id,
                        actor_id=bid.created_by,
                        type=DesignEventType.BID_DESIGN,
                        created_at=now,
                        bid_id=bid.id,
                        quote_id=quote.id,
                        **self._target(bid),
                    ),
                )
            )

        appended.append(
            self._append_decision(
                trx,
                create_design_event(
                    design_id=quote.design_id,
                    actor_id=actor_id,
                    type=DesignEventType.ACCEPT_SERVICE_BID,
                    created_at=now,
                    bid_id=bid.id,
                    quote_id=quote.id,
                    **self._target(bid),
                ),
            )
        )

        self._activate_partner(trx, bid, quote.design_id)
        appended.extend(self.actualize_steps(trx, bid, quote.design_id, actor_id))
        return appended

    def reject_bid(self, trx: Transaction, command: RejectBid, actor_id: str) -> list[DesignEvent]:
        """
        Decline a bid with at least one reason

        Steps are left untouched: a rejected bid never paired anyone.

        Raises:
            BidNotFound: If the bid does not exist
            NotAssignedToBid: If the actor is not the assignee
            MissingRejectionReason: If no reason was given
            DuplicateAcceptRejectError: If the bid was already decided
            BidNotOpen: If the bid was removed or has expired
        """
        bid = self.bids.get(trx, command.bid_id)
        self._validate_assignee(trx, bid, actor_id)
        validate_rejection_reasons(bid.id, command.reasons)
        validate_bid_decidable(bid, self.bid_state(trx, bid))

        quote = self.quotes.get(trx, bid.quote_id)
        now = self.time_provider.now()

        event = self._append_decision(
            trx,
            create_design_event(
                design_id=quote.design_id,
                actor_id=actor_id,
                type=DesignEventType.REJECT_SERVICE_BID,
                created_at=now,
                bid_id=bid.id,
                quote_id=quote.id,
                **self._target(bid),
            ),
        )
        self.bids.create_rejection(
            trx,
            BidRejection(
                id=generate_id(),
                bid_id=bid.id,
                created_at=now,
                created_by=actor_id,
                reasons=command.reasons,
            ),
        )

        collaborator = self._find_collaborator(trx, bid, quote.design_id)
        if collaborator is not None and collaborator.role == CollaboratorRole.PREVIEW:
            self.collaborators.update(
                trx, collaborator, role=collaborator.role, cancelled_at=now
            )
        return [event]

    def remove_partner(
        self, trx: Transaction, command: RemovePartner, actor_id: str
    ) -> list[DesignEvent]:
        """
        Take an accepted partner off the design (ACCEPTED → REMOVED)

        Raises:
            BidNotFound: If the bid does not exist
            BidNotOpen: If the bid is not ACCEPTED
        """
        bid = self.bids.get(trx, command.bid_id)
        validate_bid_removable(bid, self.bid_state(trx, bid))

        quote = self.quotes.get(trx, bid.quote_id)
        now = self.time_provider.now()
        event = self.events.append(
            trx,
            create_design_event(
                design_id=quote.design_id,
                actor_id=actor_id,
                type=DesignEventType.REMOVE_PARTNER,
                created_at=now,
                bid_id=bid.id,
                quote_id=quote.id,
                **self._target(bid),
            ),
        )

        collaborator = self._find_collaborator(trx, bid, quote.design_id)
        if collaborator is not None:
            self.collaborators.update(
                trx, collaborator, role=collaborator.role, cancelled_at=now
            )
        return [event]

    def actualize_steps(
        self, trx: Transaction, bid: Bid, design_id: str, actor_id: str
    ) -> list[DesignEvent]:
        """
        Pair the accepted partner with the steps the bid's task types unblock

        A paired step leaves BLOCKED for UNSTARTED. If afterwards no step is
        CURRENT, the first UNSTARTED step whose previous non-skipped step is
        COMPLETED becomes CURRENT.
        """
        now = self.time_provider.now()
        appended: list[DesignEvent] = []

        for task_type in dict.fromkeys(bid.task_types):
            step_type = PAIRED_STEP_TYPES[task_type]
            step = self.steps.find_by_design_and_type(trx, design_id, step_type)
            if step is None or step.state not in (
                ApprovalStepState.BLOCKED,
                ApprovalStepState.UNSTARTED,
            ):
                continue
            if self.events.has_partner_pairing(trx, step.id):
                continue

            appended.append(
                self.events.append(
                    trx,
                    create_design_event(
                        design_id=design_id,
                        actor_id=actor_id,
                        type=DesignEventType.STEP_PARTNER_PAIRING,
                        created_at=now,
                        bid_id=bid.id,
                        quote_id=bid.quote_id,
                        approval_step_id=step.id,
                        task_type_id=task_type.value,
                    ),
                )
            )
            if step.state == ApprovalStepState.BLOCKED:
                self.steps.update(
                    trx, step.id, {"state": ApprovalStepState.UNSTARTED, "reason": None}
                )

        steps = [s for s in self.steps.find_by_design(trx, design_id) if not s.is_skipped]
        if any(s.state == ApprovalStepState.CURRENT for s in steps):
            return appended

        for previous, step in zip(steps, steps[1:]):
            if (
                step.state == ApprovalStepState.UNSTARTED
                and previous.state == ApprovalStepState.COMPLETED
            ):
                self.steps.update(trx, step.id, {"state": ApprovalStepState.CURRENT})
                break
        return appended

    def _append_decision(self, trx: Transaction, event: DesignEvent) -> DesignEvent:
        try:
            return self.events.append(trx, event)
        except DuplicateAcceptRejectError:
            duplicate_bid_decisions_total.labels(event_type=event.type.value).inc()
            logger.warning(
                "Duplicate bid decision refused",
                bid_id=event.bid_id,
                event_type=event.type.value,
            )
            raise

    def _validate_assignee(self, trx: Transaction, bid: Bid, actor_id: str) -> None:
        if bid.assignee.type == AssigneeType.USER:
            assigned = bid.assignee.id == actor_id
        else:
            assigned = self.team_users.is_member(trx, bid.assignee.id, actor_id)
        if not assigned:
            raise NotAssignedToBid(bid.id, actor_id)

    def _find_collaborator(
        self, trx: Transaction, bid: Bid, design_id: str
    ) -> Collaborator | None:
        if bid.assignee.type == AssigneeType.USER:
            return self.collaborators.find_by_design_and_user(trx, design_id, bid.assignee.id)
        return self.collaborators.find_by_design_and_team(trx, design_id, bid.assignee.id)

    def _activate_partner(self, trx: Transaction, bid: Bid, design_id: str) -> Collaborator:
        collaborator = self._find_collaborator(trx, bid, design_id)
        if collaborator is not None:
            return self.collaborators.update(
                trx, collaborator, role=CollaboratorRole.PARTNER, cancelled_at=None
            )

        is_user = bid.assignee.type == AssigneeType.USER
        return self.collaborators.create(
            trx,
            Collaborator(
                id=generate_id(),
                design_id=design_id,
                user_id=bid.assignee.id if is_user else None,
                team_id=None if is_user else bid.assignee.id,
                role=CollaboratorRole.PARTNER,
                created_at=self.time_provider.now(),
            ),
        )

    @staticmethod
    def _target(bid: Bid) -> dict[str, str]:
        if bid.assignee.type == AssigneeType.USER:
            return {"target_id": bid.assignee.id}
        return {"target_team_id": bid.assignee.id}
