"""Designs - products grouped into collections, with their cost inputs"""

from design_pipeline.designs.models import Complexity, CostInput, Design
from design_pipeline.designs.repository import CostInputRepository, DesignRepository

__all__ = [
    "Complexity",
    "CostInput",
    "CostInputRepository",
    "Design",
    "DesignRepository",
]
