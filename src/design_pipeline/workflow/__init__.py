"""
Workflow - commands, invariants and the services that turn them into events

Workflow classes never open transactions: the Pipeline façade owns the
transaction boundary and passes it in.
"""

from design_pipeline.workflow.bids import BidWorkflow
from design_pipeline.workflow.costing import CostingWorkflow
from design_pipeline.workflow.reversal import ReversalWorkflow
from design_pipeline.workflow.steps import StepWorkflow
from design_pipeline.workflow.submissions import SubmissionWorkflow

__all__ = [
    "BidWorkflow",
    "CostingWorkflow",
    "ReversalWorkflow",
    "StepWorkflow",
    "SubmissionWorkflow",
]
