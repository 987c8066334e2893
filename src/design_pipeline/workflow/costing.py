"""
Costing Workflow - collection-level pricing operations

Each operation fans out over the collection's non-deleted designs inside one
transaction: either every design is handled or none is.
"""

from design_pipeline.designs.models import Design
from design_pipeline.designs.repository import CostInputRepository, DesignRepository
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.events.store import DesignEventStore
from design_pipeline.invoices.models import Invoice, LineItem
from design_pipeline.invoices.repository import InvoiceRepository
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import EmptyCollection, InvalidStateError, QuoteNotFound
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.pricing.models import PricingQuote
from design_pipeline.pricing.repository import PricingQuoteRepository
from design_pipeline.steps.models import ApprovalStep, ApprovalStepState, ApprovalStepType
from design_pipeline.steps.repository import ApprovalStepRepository
from design_pipeline.workflow.commands import CommitCostInputs, CommitQuote, RejectCollection
from design_pipeline.workflow.invariants import validate_step_state

logger = get_logger(__name__)


class CostingWorkflow:
    def __init__(
        self,
        events: DesignEventStore,
        designs: DesignRepository,
        cost_inputs: CostInputRepository,
        quotes: PricingQuoteRepository,
        steps: ApprovalStepRepository,
        invoices: InvoiceRepository,
        time_provider: TimeProvider,
        policy: WorkflowPolicy,
    ) -> None:
        self.events = events
        self.designs = designs
        self.cost_inputs = cost_inputs
        self.quotes = quotes
        self.steps = steps
        self.invoices = invoices
        self.time_provider = time_provider
        self.policy = policy

    def commit_cost_inputs(
        self, trx: Transaction, command: CommitCostInputs, actor_id: str
    ) -> list[DesignEvent]:
        """
        Costing is done: cost inputs stay valid for cost_input_expiration_days

        The designer (design owner) is the event target, since it is their
        quote that just became available.
        """
        now = self.time_provider.now()
        expires_at = now + self.policy.cost_input_expiration

        events = []
        for design in self.designs.find_by_collection(trx, command.collection_id):
            self.cost_inputs.expire_for_design(trx, design.id, expires_at)
            checkout = self.steps.find_by_design_and_type(
                trx, design.id, ApprovalStepType.CHECKOUT
            )
            events.append(
                create_design_event(
                    design_id=design.id,
                    actor_id=actor_id,
                    type=DesignEventType.COMMIT_COST_INPUTS,
                    created_at=now,
                    target_id=design.user_id,
                    approval_step_id=checkout.id if checkout else None,
                )
            )
        return self.events.append_all(trx, events)

    def commit_quote(self, trx: Transaction, command: CommitQuote, actor_id: str) -> Invoice:
        """
        Check out a collection

        For every design: append COMMIT_QUOTE and complete its checkout step,
        which starts the next step and creates the default submissions. One
        invoice with a line item per design is created for the collection.

        Raises:
            EmptyCollection: If the collection has no designs
            QuoteNotFound: If a design has no quote
            InvalidStepTransition: If a design's checkout is not CURRENT
        """
        designs = self.designs.find_by_collection(trx, command.collection_id)
        if not designs:
            raise EmptyCollection(command.collection_id)

        checkouts: list[tuple[Design, PricingQuote, ApprovalStep]] = []
        for design in designs:
            quote = self.quotes.find_latest_by_design(trx, design.id)
            if quote is None:
                raise QuoteNotFound(design.id)
            checkout = self._checkout_step(trx, design)
            validate_step_state(checkout, ApprovalStepState.CURRENT, ApprovalStepState.COMPLETED)
            checkouts.append((design, quote, checkout))

        now = self.time_provider.now()
        for design, quote, checkout in checkouts:
            self.events.append(
                trx,
                create_design_event(
                    design_id=design.id,
                    actor_id=actor_id,
                    type=DesignEventType.COMMIT_QUOTE,
                    created_at=now,
                    quote_id=quote.id,
                    approval_step_id=checkout.id,
                ),
            )
            self.steps.update(trx, checkout.id, {"state": ApprovalStepState.COMPLETED})

        invoice = Invoice(
            id=generate_id(),
            collection_id=command.collection_id,
            total_cents=sum(quote.total_cents for _, quote, _ in checkouts),
            created_at=now,
        )
        line_items = [
            LineItem(
                id=generate_id(),
                invoice_id=invoice.id,
                design_id=design.id,
                quote_id=quote.id,
                title=design.title or design.id,
                created_at=now,
            )
            for design, quote, _ in checkouts
        ]
        self.invoices.create(trx, invoice, line_items)
        logger.info(
            "Collection checked out",
            collection_id=command.collection_id,
            invoice_id=invoice.id,
            design_count=len(checkouts),
            total_cents=invoice.total_cents,
        )
        return invoice

    def reject_collection(
        self, trx: Transaction, command: RejectCollection, actor_id: str
    ) -> list[DesignEvent]:
        """
        Reject the designs still waiting at checkout

        Designs whose checkout is CURRENT get a REJECT_DESIGN event and their
        cost inputs expire immediately. Returns [] when nothing matches.
        """
        now = self.time_provider.now()
        events = []
        for design in self.designs.find_by_collection(trx, command.collection_id):
            checkout = self.steps.find_by_design_and_type(
                trx, design.id, ApprovalStepType.CHECKOUT
            )
            if checkout is None or checkout.state != ApprovalStepState.CURRENT:
                continue
            self.cost_inputs.expire_for_design(trx, design.id, now)
            events.append(
                create_design_event(
                    design_id=design.id,
                    actor_id=actor_id,
                    type=DesignEventType.REJECT_DESIGN,
                    created_at=now,
                    target_id=design.user_id,
                    approval_step_id=checkout.id,
                )
            )
        return self.events.append_all(trx, events)

    def _checkout_step(self, trx: Transaction, design: Design) -> ApprovalStep:
        checkout = self.steps.find_by_design_and_type(trx, design.id, ApprovalStepType.CHECKOUT)
        if checkout is None:
            raise InvalidStateError(f"Design {design.id} has no checkout step")
        return checkout
