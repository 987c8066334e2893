"""
Pipeline - Main façade class

This is the primary interface to the design pipeline. It wires the
repositories, the step listener cascade and the workflows together and runs
each operation in exactly one SQLite transaction.

Every operation accepts an optional `trx` to compose several operations into
one transaction; events are published on the bus only after the outermost
transaction commits.

Example:
    >>> from design_pipeline import Pipeline
    >>> pipeline = Pipeline("pipeline.db")
    >>> design = pipeline.create_design("designer-1", collection_id="c-1")
    >>> quote = pipeline.create_quote(design.id, units=100, unit_cost_cents=1200)
    >>> pipeline.commit_quote("c-1", actor_id="designer-1")
    >>> bid = pipeline.create_bid(quote.id, "USER", "partner-1", ["TECHNICAL_DESIGN"],
    ...                           actor_id="admin-1")
    >>> pipeline.accept_bid(bid.id, actor_id="partner-1")
    >>> pipeline.bid_state(bid.id)
    <BidState.ACCEPTED: 'ACCEPTED'>
"""

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from design_pipeline.bids.models import (
    Assignee,
    AssigneeType,
    Bid,
    BidRejectionReasons,
    BidState,
    TaskType,
)
from design_pipeline.bids.repository import BidRepository
from design_pipeline.bids.state_machine import determine_state_from_events, is_expired
from design_pipeline.collaborators.models import TeamUser
from design_pipeline.collaborators.repository import CollaboratorRepository, TeamUserRepository
from design_pipeline.designs.models import Complexity, CostInput, Design
from design_pipeline.designs.repository import CostInputRepository, DesignRepository
from design_pipeline.events.models import DesignEvent, DesignEventType
from design_pipeline.events.store import DesignEventStore
from design_pipeline.invoices.models import Invoice
from design_pipeline.invoices.repository import InvoiceRepository
from design_pipeline.kernel.bus import EventBus, EventHandler
from design_pipeline.kernel.database import Database, Transaction
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.logging import LogOperation, get_logger
from design_pipeline.kernel.metrics import track_operation
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import RealTimeProvider, TimeProvider
from design_pipeline.pricing.models import PricingQuote
from design_pipeline.pricing.repository import PricingQuoteRepository
from design_pipeline.steps.listeners import StepCascade
from design_pipeline.steps.models import ApprovalStep
from design_pipeline.steps.repository import ApprovalStepRepository
from design_pipeline.submissions.models import ApprovalStepSubmission, SubmissionState
from design_pipeline.submissions.repository import ApprovalSubmissionRepository
from design_pipeline.workflow.bids import BidWorkflow
from design_pipeline.workflow.commands import (
    AcceptBid,
    AssignStep,
    AssignSubmission,
    CommitCostInputs,
    CommitQuote,
    CompleteStep,
    CreateBid,
    CreateSubmission,
    RejectBid,
    RejectCollection,
    RemovePartner,
    ReopenStep,
    TransitionSubmission,
)
from design_pipeline.workflow.costing import CostingWorkflow
from design_pipeline.workflow.reversal import ReversalWorkflow
from design_pipeline.workflow.steps import StepWorkflow
from design_pipeline.workflow.submissions import SubmissionWorkflow

logger = get_logger(__name__)

T = TypeVar("T")


class Pipeline:
    """
    Design pipeline main façade

    Provides a unified API for:
    - The design event log (append, query, step activity streams)
    - Bid lifecycle (create, accept, reject, remove partner, derived state)
    - Costing and checkout (cost inputs, quote commit, collection rejection)
    - Checkout reversal
    - Approval steps and submissions
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        policy: WorkflowPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the pipeline

        Args:
            sqlite_path: Path to SQLite database (created if missing)
            policy: Workflow policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.policy = policy or WorkflowPolicy()
        self.time_provider = time_provider or RealTimeProvider()

        # Infrastructure
        self.database = Database(self.sqlite_path, busy_timeout_ms=self.policy.busy_timeout_ms)
        self.bus = EventBus()

        # Repositories
        self.events = DesignEventStore()
        self.designs = DesignRepository()
        self.cost_inputs = CostInputRepository()
        self.quotes = PricingQuoteRepository()
        self.bids = BidRepository()
        self.collaborators = CollaboratorRepository()
        self.team_users = TeamUserRepository()
        self.submissions = ApprovalSubmissionRepository()
        self.invoices = InvoiceRepository()

        self.cascade = StepCascade(
            self.events, self.submissions, self.designs, self.quotes, self.time_provider
        )
        self.steps = ApprovalStepRepository(self.time_provider, self.cascade.listeners())

        # Workflows
        self.bid_workflow = BidWorkflow(
            self.events,
            self.bids,
            self.quotes,
            self.collaborators,
            self.team_users,
            self.steps,
            self.time_provider,
            self.policy,
        )
        self.step_workflow = StepWorkflow(
            self.events, self.steps, self.designs, self.collaborators, self.time_provider
        )
        self.submission_workflow = SubmissionWorkflow(
            self.events,
            self.submissions,
            self.steps,
            self.collaborators,
            self.team_users,
            self.time_provider,
        )
        self.costing_workflow = CostingWorkflow(
            self.events,
            self.designs,
            self.cost_inputs,
            self.quotes,
            self.steps,
            self.invoices,
            self.time_provider,
            self.policy,
        )
        self.reversal_workflow = ReversalWorkflow(
            self.events,
            self.designs,
            self.invoices,
            self.steps,
            self.time_provider,
            self.policy,
        )

    # Transactions and notifications

    @contextmanager
    def transaction(self, *, read_only: bool = False) -> Iterator[Transaction]:
        """
        Open a transaction; publish its events on the bus after commit

        Nothing is published when the transaction rolls back.
        """
        with self.database.transaction(read_only=read_only) as trx:
            yield trx
        self.bus.publish_events(trx.appended_events)

    def subscribe(self, event_type: DesignEventType | str, handler: EventHandler) -> None:
        """Register a post-commit handler for one design event type"""
        self.bus.subscribe(event_type, handler)

    def _run(
        self,
        operation: str,
        work: Callable[[Transaction], T],
        trx: Transaction | None,
        *,
        read_only: bool = False,
        **context: Any,
    ) -> T:
        with LogOperation(logger, operation, **context):
            if trx is not None:
                return work(trx)
            with self.transaction(read_only=read_only) as own:
                return work(own)

    # Event log

    @track_operation("append_event")
    def append_event(self, event: DesignEvent, trx: Transaction | None = None) -> DesignEvent:
        return self._run(
            "append_event",
            lambda t: self.events.append(t, event),
            trx,
            event_type=event.type.value,
            design_id=event.design_id,
        )

    def find_events(
        self,
        *,
        types: Iterable[DesignEventType] | None = None,
        trx: Transaction | None = None,
        **filters: Any,
    ) -> list[DesignEvent]:
        """
        Query the event log by column equality

        Example:
            >>> pipeline.find_events(design_id="d-1", types=[DesignEventType.COMMIT_QUOTE])
        """
        if trx is not None:
            return self.events.find(trx, types=types, **filters)
        with self.database.transaction(read_only=True) as own:
            return self.events.find(own, types=types, **filters)

    def step_activity(
        self, design_id: str, step_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        if trx is not None:
            return self.events.find_by_step(trx, design_id, step_id)
        with self.database.transaction(read_only=True) as own:
            return self.events.find_by_step(own, design_id, step_id)

    # Bid state

    def determine_state_from_events(
        self, bid: Bid, events: Iterable[DesignEvent], now: datetime | None = None
    ) -> BidState:
        return determine_state_from_events(
            bid, events, now or self.time_provider.now(), self.policy.bid_expiration
        )

    def is_expired(self, bid: Bid, now: datetime | None = None) -> bool:
        return is_expired(bid, now or self.time_provider.now(), self.policy.bid_expiration)

    def bid_state(self, bid_id: str, trx: Transaction | None = None) -> BidState:
        """
        Derive the current state of a bid from the event log

        Raises:
            BidNotFound: If the bid does not exist
        """
        if trx is not None:
            return self.bid_workflow.bid_state(trx, self.bids.get(trx, bid_id))
        with self.database.transaction(read_only=True) as own:
            return self.bid_workflow.bid_state(own, self.bids.get(own, bid_id))

    def get_bid(self, bid_id: str) -> Bid:
        with self.database.transaction(read_only=True) as trx:
            return self.bids.get(trx, bid_id)

    # Bid operations

    @track_operation("create_bid")
    def create_bid(
        self,
        quote_id: str,
        assignee_type: AssigneeType | str,
        assignee_id: str,
        task_types: list[TaskType | str],
        actor_id: str,
        bid_price_cents: int = 0,
        due_date: datetime | None = None,
        description: str | None = None,
        trx: Transaction | None = None,
    ) -> Bid:
        """
        Offer a quote's work to a user or a team

        Raises:
            QuoteNotFound: If the quote does not exist
            ActiveBidExists: If the assignee already holds a live bid on the quote
        """
        command = CreateBid(
            quote_id=quote_id,
            assignee=Assignee(type=AssigneeType(assignee_type), id=assignee_id),
            task_types=[TaskType(t) for t in task_types],
            bid_price_cents=bid_price_cents,
            due_date=due_date,
            description=description,
        )
        return self._run(
            "create_bid",
            lambda t: self.bid_workflow.create_bid(t, command, actor_id),
            trx,
            quote_id=quote_id,
            actor_id=actor_id,
        )

    @track_operation("accept_bid")
    def accept_bid(
        self, bid_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        """
        Accept a bid as its assignee

        Raises:
            NotAssignedToBid: If the actor is not the assignee
            DuplicateAcceptRejectError: If the bid was already accepted or rejected
            BidNotOpen: If the bid was removed or has expired
        """
        command = AcceptBid(bid_id=bid_id)
        return self._run(
            "accept_bid",
            lambda t: self.bid_workflow.accept_bid(t, command, actor_id),
            trx,
            bid_id=bid_id,
            actor_id=actor_id,
        )

    @track_operation("reject_bid")
    def reject_bid(
        self,
        bid_id: str,
        actor_id: str,
        reasons: BidRejectionReasons | None = None,
        trx: Transaction | None = None,
    ) -> list[DesignEvent]:
        command = RejectBid(bid_id=bid_id, reasons=reasons or BidRejectionReasons())
        return self._run(
            "reject_bid",
            lambda t: self.bid_workflow.reject_bid(t, command, actor_id),
            trx,
            bid_id=bid_id,
            actor_id=actor_id,
        )

    @track_operation("remove_partner")
    def remove_partner(
        self, bid_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        command = RemovePartner(bid_id=bid_id)
        return self._run(
            "remove_partner",
            lambda t: self.bid_workflow.remove_partner(t, command, actor_id),
            trx,
            bid_id=bid_id,
            actor_id=actor_id,
        )

    # Costing and checkout

    @track_operation("commit_cost_inputs")
    def commit_cost_inputs(
        self, collection_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        command = CommitCostInputs(collection_id=collection_id)
        return self._run(
            "commit_cost_inputs",
            lambda t: self.costing_workflow.commit_cost_inputs(t, command, actor_id),
            trx,
            collection_id=collection_id,
            actor_id=actor_id,
        )

    @track_operation("commit_quote")
    def commit_quote(
        self, collection_id: str, actor_id: str, trx: Transaction | None = None
    ) -> Invoice:
        """
        Check out a collection: completes every design's checkout step,
        creates the default submissions and the collection invoice

        Raises:
            EmptyCollection: If the collection has no designs
            QuoteNotFound: If a design has no quote
            InvalidStepTransition: If a design's checkout is not CURRENT
        """
        command = CommitQuote(collection_id=collection_id)
        return self._run(
            "commit_quote",
            lambda t: self.costing_workflow.commit_quote(t, command, actor_id),
            trx,
            collection_id=collection_id,
            actor_id=actor_id,
        )

    @track_operation("reject_collection")
    def reject_collection(
        self, collection_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        command = RejectCollection(collection_id=collection_id)
        return self._run(
            "reject_collection",
            lambda t: self.costing_workflow.reject_collection(t, command, actor_id),
            trx,
            collection_id=collection_id,
            actor_id=actor_id,
        )

    @track_operation("reverse_collection_checkout")
    def reverse_collection_checkout(
        self, collection_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        """
        Raises:
            NoActiveInvoice: If the collection was never checked out
            CheckoutAlreadyReversed: If the checkout was already reversed
        """
        return self._run(
            "reverse_collection_checkout",
            lambda t: self.reversal_workflow.reverse_collection_checkout(
                t, collection_id, actor_id
            ),
            trx,
            collection_id=collection_id,
            actor_id=actor_id,
        )

    # Approval steps

    @track_operation("initialize_design_steps")
    def initialize_design_steps(
        self, design_id: str, trx: Transaction | None = None
    ) -> list[ApprovalStep]:
        return self._run(
            "initialize_design_steps",
            lambda t: self.step_workflow.initialize_design_steps(t, design_id),
            trx,
            design_id=design_id,
        )

    def get_steps(self, design_id: str, trx: Transaction | None = None) -> list[ApprovalStep]:
        if trx is not None:
            return self.steps.find_by_design(trx, design_id)
        with self.database.transaction(read_only=True) as own:
            return self.steps.find_by_design(own, design_id)

    @track_operation("complete_step")
    def complete_step(
        self, step_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        command = CompleteStep(step_id=step_id)
        return self._run(
            "complete_step",
            lambda t: self.step_workflow.complete_step(t, command, actor_id),
            trx,
            step_id=step_id,
            actor_id=actor_id,
        )

    @track_operation("reopen_step")
    def reopen_step(
        self, step_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        command = ReopenStep(step_id=step_id)
        return self._run(
            "reopen_step",
            lambda t: self.step_workflow.reopen_step(t, command, actor_id),
            trx,
            step_id=step_id,
            actor_id=actor_id,
        )

    @track_operation("assign_step")
    def assign_step(
        self,
        step_id: str,
        collaborator_id: str | None,
        actor_id: str,
        trx: Transaction | None = None,
    ) -> list[DesignEvent]:
        command = AssignStep(step_id=step_id, collaborator_id=collaborator_id)
        return self._run(
            "assign_step",
            lambda t: self.step_workflow.assign_step(t, command, actor_id),
            trx,
            step_id=step_id,
            actor_id=actor_id,
        )

    # Submissions

    def get_submissions(
        self, design_id: str, trx: Transaction | None = None
    ) -> list[ApprovalStepSubmission]:
        if trx is not None:
            return self.submissions.find_by_design(trx, design_id)
        with self.database.transaction(read_only=True) as own:
            return self.submissions.find_by_design(own, design_id)

    @track_operation("create_submission")
    def create_submission(
        self, step_id: str, title: str, trx: Transaction | None = None
    ) -> ApprovalStepSubmission:
        command = CreateSubmission(step_id=step_id, title=title)
        return self._run(
            "create_submission",
            lambda t: self.submission_workflow.create_submission(t, command),
            trx,
            step_id=step_id,
        )

    @track_operation("delete_submission")
    def delete_submission(self, submission_id: str, trx: Transaction | None = None) -> None:
        return self._run(
            "delete_submission",
            lambda t: self.submission_workflow.delete_submission(t, submission_id),
            trx,
            submission_id=submission_id,
        )

    @track_operation("assign_submission")
    def assign_submission(
        self,
        submission_id: str,
        actor_id: str,
        collaborator_id: str | None = None,
        team_user_id: str | None = None,
        trx: Transaction | None = None,
    ) -> list[DesignEvent]:
        """
        Assign a submission to a collaborator or a team user; neither unassigns

        Raises:
            InvalidAssignee: If both are given
            AssigneeLockedAfterApproval: If the submission is APPROVED
        """
        command = AssignSubmission(
            submission_id=submission_id,
            collaborator_id=collaborator_id,
            team_user_id=team_user_id,
        )
        return self._run(
            "assign_submission",
            lambda t: self.submission_workflow.assign_submission(t, command, actor_id),
            trx,
            submission_id=submission_id,
            actor_id=actor_id,
        )

    @track_operation("approve_submission")
    def approve_submission(
        self, submission_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        return self._run(
            "approve_submission",
            lambda t: self.submission_workflow.approve_submission(t, submission_id, actor_id),
            trx,
            submission_id=submission_id,
            actor_id=actor_id,
        )

    @track_operation("request_revision")
    def request_revision(
        self, submission_id: str, actor_id: str, trx: Transaction | None = None
    ) -> list[DesignEvent]:
        return self._run(
            "request_revision",
            lambda t: self.submission_workflow.request_revision(t, submission_id, actor_id),
            trx,
            submission_id=submission_id,
            actor_id=actor_id,
        )

    @track_operation("transition_submission")
    def transition_submission(
        self,
        submission_id: str,
        state: SubmissionState | str,
        actor_id: str,
        trx: Transaction | None = None,
    ) -> list[DesignEvent]:
        command = TransitionSubmission(submission_id=submission_id, state=SubmissionState(state))
        return self._run(
            "transition_submission",
            lambda t: self.submission_workflow.transition_submission(t, command, actor_id),
            trx,
            submission_id=submission_id,
            target_state=command.state.value,
            actor_id=actor_id,
        )

    # Reference data
    #
    # Designs, quotes, cost inputs and teams are owned by other services;
    # these helpers store local copies so the pipeline can run on its own.

    def create_design(
        self,
        user_id: str,
        collection_id: str | None = None,
        title: str = "",
        complexity: Complexity | str = Complexity.SIMPLE,
        initialize_steps: bool = True,
        trx: Transaction | None = None,
    ) -> Design:
        """Store a design and, by default, its four approval steps"""

        def work(t: Transaction) -> Design:
            design = self.designs.create(
                t,
                Design(
                    id=generate_id(),
                    user_id=user_id,
                    collection_id=collection_id,
                    title=title,
                    complexity=Complexity(complexity),
                    created_at=self.time_provider.now(),
                ),
            )
            if initialize_steps:
                self.step_workflow.initialize_design_steps(t, design.id)
            return design

        return self._run("create_design", work, trx, collection_id=collection_id)

    def delete_design(self, design_id: str, trx: Transaction | None = None) -> None:
        return self._run(
            "delete_design",
            lambda t: self.designs.delete(t, design_id, self.time_provider.now()),
            trx,
            design_id=design_id,
        )

    def create_quote(
        self,
        design_id: str,
        units: int,
        unit_cost_cents: int,
        processes: list[str] | None = None,
        trx: Transaction | None = None,
    ) -> PricingQuote:
        quote = PricingQuote(
            id=generate_id(),
            design_id=design_id,
            units=units,
            unit_cost_cents=unit_cost_cents,
            processes=processes or [],
            created_at=self.time_provider.now(),
        )
        return self._run(
            "create_quote", lambda t: self.quotes.create(t, quote), trx, design_id=design_id
        )

    def create_cost_input(self, design_id: str, trx: Transaction | None = None) -> CostInput:
        cost_input = CostInput(
            id=generate_id(), design_id=design_id, created_at=self.time_provider.now()
        )
        return self._run(
            "create_cost_input",
            lambda t: self.cost_inputs.create(t, cost_input),
            trx,
            design_id=design_id,
        )

    def add_team_user(
        self, team_id: str, user_id: str, trx: Transaction | None = None
    ) -> TeamUser:
        team_user = TeamUser(id=generate_id(), team_id=team_id, user_id=user_id)
        return self._run(
            "add_team_user",
            lambda t: self.team_users.create(t, team_user),
            trx,
            team_id=team_id,
            user_id=user_id,
        )
