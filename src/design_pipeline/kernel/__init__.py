"""
Kernel - storage, time, errors and observability shared by every package

The kernel owns the SQLite transaction boundary. Domain packages receive a
Transaction and never open connections themselves.
"""

from design_pipeline.kernel.database import Database, Transaction
from design_pipeline.kernel.errors import (
    ConflictError,
    DuplicateAcceptRejectError,
    InvalidStateError,
    PipelineError,
    ResourceNotFound,
)
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import FixedTimeProvider, RealTimeProvider, TimeProvider

__all__ = [
    # Storage
    "Database",
    "Transaction",
    # IDs & time
    "generate_id",
    "TimeProvider",
    "RealTimeProvider",
    "FixedTimeProvider",
    # Configuration
    "WorkflowPolicy",
    # Errors
    "PipelineError",
    "ConflictError",
    "ResourceNotFound",
    "InvalidStateError",
    "DuplicateAcceptRejectError",
]
