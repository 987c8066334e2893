"""
Steps - the ordered approval steps of a design and their cascade

Step state is changed only through ApprovalStepRepository.update(), which
fires the StepCascade listeners in order.
"""

from design_pipeline.steps.defaults import build_default_steps
from design_pipeline.steps.models import (
    ApprovalStep,
    ApprovalStepState,
    ApprovalStepType,
    StepChange,
)
from design_pipeline.steps.repository import ApprovalStepRepository, StepListener

__all__ = [
    "ApprovalStep",
    "ApprovalStepRepository",
    "ApprovalStepState",
    "ApprovalStepType",
    "StepChange",
    "StepListener",
    "build_default_steps",
]
