"""
Default submissions created when a design's checkout completes

The count depends on product complexity: BLANK products get 5 submissions,
every other complexity gets 8. Each distinct decoration process on the
design's latest quote adds one "Review <process> trial" on the sample step.
"""

from datetime import datetime, timedelta

from design_pipeline.designs.models import Complexity
from design_pipeline.kernel.ids import generate_id
from design_pipeline.steps.models import ApprovalStep, ApprovalStepType
from design_pipeline.submissions.models import (
    ApprovalStepSubmission,
    SubmissionArtifactType,
    SubmissionState,
)

# (step type, title, artifact type)
SubmissionTemplate = tuple[ApprovalStepType, str, SubmissionArtifactType]

_PRODUCTION_CONFIRMATIONS: tuple[SubmissionTemplate, ...] = (
    (
        ApprovalStepType.PRODUCTION,
        "Confirm receipt of TOP and CALA keep samples",
        SubmissionArtifactType.CUSTOM,
    ),
    (ApprovalStepType.PRODUCTION, "Review product photography", SubmissionArtifactType.CUSTOM),
    (
        ApprovalStepType.PRODUCTION,
        "Confirm receipt of final shipment",
        SubmissionArtifactType.CUSTOM,
    ),
)

BLANK_TEMPLATES: tuple[SubmissionTemplate, ...] = (
    (
        ApprovalStepType.TECHNICAL_DESIGN,
        "Review technical design",
        SubmissionArtifactType.TECHNICAL_DESIGN,
    ),
    (ApprovalStepType.SAMPLE, "Review sample photo", SubmissionArtifactType.SAMPLE),
    *_PRODUCTION_CONFIRMATIONS,
)

CUT_AND_SEW_TEMPLATES: tuple[SubmissionTemplate, ...] = (
    (
        ApprovalStepType.TECHNICAL_DESIGN,
        "Review technical design",
        SubmissionArtifactType.TECHNICAL_DESIGN,
    ),
    (ApprovalStepType.SAMPLE, "Review material sample", SubmissionArtifactType.SAMPLE),
    (ApprovalStepType.SAMPLE, "Review final sample", SubmissionArtifactType.SAMPLE),
    (ApprovalStepType.SAMPLE, "Review bulk graded specs", SubmissionArtifactType.CUSTOM),
    (ApprovalStepType.PRODUCTION, "Confirm quality inspection", SubmissionArtifactType.CUSTOM),
    *_PRODUCTION_CONFIRMATIONS,
)


def templates_for(complexity: Complexity) -> tuple[SubmissionTemplate, ...]:
    if complexity == Complexity.BLANK:
        return BLANK_TEMPLATES
    return CUT_AND_SEW_TEMPLATES


def process_templates(processes: list[str]) -> list[SubmissionTemplate]:
    """One trial review per distinct process name, in quote order"""
    return [
        (ApprovalStepType.SAMPLE, f"Review {name} trial", SubmissionArtifactType.CUSTOM)
        for name in dict.fromkeys(processes)
    ]


def build_default_submissions(
    steps: list[ApprovalStep],
    complexity: Complexity,
    processes: list[str],
    now: datetime,
) -> list[ApprovalStepSubmission]:
    """
    Build (unsaved) default submissions for a design's steps

    created_at is offset by one microsecond per submission so that listing
    by created_at keeps template order.

    Raises:
        ValueError: If a step type a template needs is missing
    """
    steps_by_type = {step.type: step for step in steps}
    templates = [*templates_for(complexity), *process_templates(processes)]

    submissions = []
    for index, (step_type, title, artifact_type) in enumerate(templates):
        step = steps_by_type.get(step_type)
        if step is None:
            raise ValueError(f"Missing {step_type.value} approval step")
        submissions.append(
            ApprovalStepSubmission(
                id=generate_id(),
                step_id=step.id,
                title=title,
                artifact_type=artifact_type,
                state=SubmissionState.UNSUBMITTED,
                created_at=now + timedelta(microseconds=index),
            )
        )
    return submissions
