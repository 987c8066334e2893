"""
Step Listener Cascade

Listeners run synchronously after every ApprovalStepRepository.update(), in
the order returned by StepCascade.listeners(). They are how one step's change
moves the rest of the pipeline:

1. advance_next_step: completing a step starts the next non-skipped one
2. revert_downstream_on_reopen: reopening a step rewinds every later step
3. create_checkout_submissions: completing checkout creates the default submissions

Whether a step "awaits partner pairing" is read from the event log (a
STEP_PARTNER_PAIRING event for the step), never from a stored flag.
"""

from design_pipeline.designs.repository import DesignRepository
from design_pipeline.events.store import DesignEventStore
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.pricing.repository import PricingQuoteRepository
from design_pipeline.steps.models import (
    PENDING_PAIRING_REASON,
    ApprovalStep,
    ApprovalStepState,
    ApprovalStepType,
    StepChange,
)
from design_pipeline.steps.repository import StepListener
from design_pipeline.submissions.defaults import build_default_submissions
from design_pipeline.submissions.repository import ApprovalSubmissionRepository

logger = get_logger(__name__)


class StepCascade:
    """
    Owns the ordered list of step listeners and their collaborators
    """

    def __init__(
        self,
        events: DesignEventStore,
        submissions: ApprovalSubmissionRepository,
        designs: DesignRepository,
        quotes: PricingQuoteRepository,
        time_provider: TimeProvider,
    ) -> None:
        self.events = events
        self.submissions = submissions
        self.designs = designs
        self.quotes = quotes
        self.time_provider = time_provider

    def listeners(self) -> list[StepListener]:
        return [
            self.advance_next_step,
            self.revert_downstream_on_reopen,
            self.create_checkout_submissions,
        ]

    def awaits_partner_pairing(self, trx: Transaction, step: ApprovalStep) -> bool:
        return step.type.requires_partner_pairing() and not self.events.has_partner_pairing(
            trx, step.id
        )

    def advance_next_step(self, change: StepChange) -> None:
        """
        On completion, move the next non-skipped step out of BLOCKED/UNSTARTED

        It becomes CURRENT, or UNSTARTED while it still awaits partner pairing
        (bid acceptance makes it CURRENT later).
        """
        if not change.entered(ApprovalStepState.COMPLETED):
            return

        trx = change.trx
        next_step = next(
            (
                step
                for step in change.repository.find_by_design(trx, change.updated.design_id)
                if step.ordering > change.updated.ordering and not step.is_skipped
            ),
            None,
        )
        if next_step is None or next_step.state not in (
            ApprovalStepState.BLOCKED,
            ApprovalStepState.UNSTARTED,
        ):
            return

        if self.awaits_partner_pairing(trx, next_step):
            target = ApprovalStepState.UNSTARTED
        else:
            target = ApprovalStepState.CURRENT

        if target == next_step.state:
            return
        change.repository.update(trx, next_step.id, {"state": target, "reason": None})

    def revert_downstream_on_reopen(self, change: StepChange) -> None:
        """
        On COMPLETED → CURRENT, put every later step back to its pre-completion state

        Steps are rewound last-to-first so no downstream step is ever left
        ahead of an upstream one.
        """
        if not change.moved(ApprovalStepState.COMPLETED, ApprovalStepState.CURRENT):
            return

        trx = change.trx
        downstream = [
            step
            for step in change.repository.find_by_design(trx, change.updated.design_id)
            if step.ordering > change.updated.ordering and not step.is_skipped
        ]
        for step in sorted(downstream, key=lambda s: s.ordering, reverse=True):
            if self.awaits_partner_pairing(trx, step):
                patch = {"state": ApprovalStepState.BLOCKED, "reason": PENDING_PAIRING_REASON}
            else:
                patch = {"state": ApprovalStepState.UNSTARTED, "reason": None}
            if step.state == patch["state"]:
                continue
            change.repository.update(trx, step.id, patch)

    def create_checkout_submissions(self, change: StepChange) -> None:
        """Completing checkout creates the design's default submissions once"""
        step = change.updated
        if step.type != ApprovalStepType.CHECKOUT or not change.entered(
            ApprovalStepState.COMPLETED
        ):
            return

        trx = change.trx
        if self.submissions.find_by_design(trx, step.design_id):
            return

        design = self.designs.get(trx, step.design_id)
        quote = self.quotes.find_latest_by_design(trx, design.id)
        created = self.submissions.create_all(
            trx,
            build_default_submissions(
                change.repository.find_by_design(trx, design.id),
                design.complexity,
                quote.processes if quote else [],
                self.time_provider.now(),
            ),
        )
        logger.info(
            "Default submissions created",
            design_id=design.id,
            complexity=design.complexity.value,
            submission_count=len(created),
        )
