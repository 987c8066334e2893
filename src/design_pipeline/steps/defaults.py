"""Default approval steps created for every design"""

from datetime import datetime

from design_pipeline.kernel.ids import generate_id
from design_pipeline.steps.models import (
    PENDING_PAIRING_REASON,
    ApprovalStep,
    ApprovalStepState,
    ApprovalStepType,
)

# (title, type, initial state, reason)
DEFAULT_STEP_TEMPLATES: tuple[
    tuple[str, ApprovalStepType, ApprovalStepState, str | None], ...
] = (
    ("Checkout", ApprovalStepType.CHECKOUT, ApprovalStepState.CURRENT, None),
    (
        "Technical Design",
        ApprovalStepType.TECHNICAL_DESIGN,
        ApprovalStepState.BLOCKED,
        PENDING_PAIRING_REASON,
    ),
    ("Sample", ApprovalStepType.SAMPLE, ApprovalStepState.BLOCKED, PENDING_PAIRING_REASON),
    ("Production", ApprovalStepType.PRODUCTION, ApprovalStepState.UNSTARTED, None),
)


def build_default_steps(design_id: str, now: datetime) -> list[ApprovalStep]:
    return [
        ApprovalStep(
            id=generate_id(),
            design_id=design_id,
            title=title,
            ordering=ordering,
            type=step_type,
            state=state,
            reason=reason,
            started_at=now if state == ApprovalStepState.CURRENT else None,
            created_at=now,
        )
        for ordering, (title, step_type, state, reason) in enumerate(DEFAULT_STEP_TEMPLATES)
    ]
