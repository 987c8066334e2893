"""
Checkout Reversal

Undoes a collection's checkout without deleting anything: the invoice gets a
credit note for its remaining balance, each design gets a REVERSE_CHECKOUT
event, and every completed step is reopened last-to-first so the step
cascade leaves each design back at checkout.
"""

from design_pipeline.designs.repository import DesignRepository
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.events.store import DesignEventStore
from design_pipeline.invoices.models import CreditNote
from design_pipeline.invoices.repository import InvoiceRepository
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import CheckoutAlreadyReversed, NoActiveInvoice
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.steps.models import ApprovalStepState, ApprovalStepType
from design_pipeline.steps.repository import ApprovalStepRepository

logger = get_logger(__name__)


class ReversalWorkflow:
    def __init__(
        self,
        events: DesignEventStore,
        designs: DesignRepository,
        invoices: InvoiceRepository,
        steps: ApprovalStepRepository,
        time_provider: TimeProvider,
        policy: WorkflowPolicy,
    ) -> None:
        self.events = events
        self.designs = designs
        self.invoices = invoices
        self.steps = steps
        self.time_provider = time_provider
        self.policy = policy

    def reverse_collection_checkout(
        self, trx: Transaction, collection_id: str, actor_id: str
    ) -> list[DesignEvent]:
        """
        Reverse the oldest invoice of a collection that still has a balance

        Returns:
            The REVERSE_CHECKOUT events, one per invoiced design

        Raises:
            NoActiveInvoice: If the collection was never checked out
            CheckoutAlreadyReversed: If every invoice is already fully credited
        """
        invoices = self.invoices.find_by_collection(trx, collection_id)
        if not invoices:
            raise NoActiveInvoice(collection_id)

        active = []
        for candidate in invoices:
            balance = self.invoices.remaining_cents(trx, candidate)
            if balance > 0:
                active.append((candidate, balance))
        if not active:
            raise CheckoutAlreadyReversed(collection_id)
        invoice, remaining = active[0]

        now = self.time_provider.now()
        line_items = self.invoices.find_line_items(trx, invoice.id)
        credit_note = self.invoices.create_credit_note(
            trx,
            CreditNote(
                id=generate_id(),
                invoice_id=invoice.id,
                reason=self.policy.reversal_credit_note_reason,
                total_cents=remaining,
                created_by=actor_id,
                created_at=now,
                line_item_ids=[item.id for item in line_items],
            ),
        )

        events = []
        for design_id in dict.fromkeys(item.design_id for item in line_items):
            checkout = self.steps.find_by_design_and_type(
                trx, design_id, ApprovalStepType.CHECKOUT
            )
            events.append(
                create_design_event(
                    design_id=design_id,
                    actor_id=actor_id,
                    type=DesignEventType.REVERSE_CHECKOUT,
                    created_at=now,
                    approval_step_id=checkout.id if checkout else None,
                )
            )
            self._reopen_completed_steps(trx, design_id)

        appended = self.events.append_all(trx, events)
        logger.info(
            "Checkout reversed",
            collection_id=collection_id,
            invoice_id=invoice.id,
            credit_note_id=credit_note.id,
            credited_cents=credit_note.total_cents,
            design_count=len(appended),
        )
        return appended

    def _reopen_completed_steps(self, trx: Transaction, design_id: str) -> None:
        """
        COMPLETED → CURRENT in descending ordering

        Each step is re-read before its update: reopening a later step
        rewinds the steps after it, and the listener of an earlier one may
        already have moved the rest.
        """
        completed = [
            step
            for step in self.steps.find_by_design(trx, design_id)
            if step.state == ApprovalStepState.COMPLETED
        ]
        for step in sorted(completed, key=lambda s: s.ordering, reverse=True):
            current = self.steps.get(trx, step.id)
            if current.state != ApprovalStepState.COMPLETED:
                continue
            self.steps.update(trx, step.id, {"state": ApprovalStepState.CURRENT})
