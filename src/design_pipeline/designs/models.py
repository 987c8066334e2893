"""
Design Models - the products moving through the pipeline

Designs belong to a collection; collection-level operations (commit quote,
reverse checkout, reject collection) fan out over the collection's non-deleted
designs.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Complexity(str, Enum):
    """
    Product complexity from the design's pricing product type

    BLANK products are finished goods that only get decorated, so they need
    fewer sampling and inspection submissions than cut-and-sew products.
    """

    BLANK = "BLANK"
    SIMPLE = "SIMPLE"
    MEDIUM = "MEDIUM"
    COMPLEX = "COMPLEX"


class Design(BaseModel):
    id: str
    user_id: str
    collection_id: str | None = None
    title: str = ""
    complexity: Complexity = Complexity.SIMPLE
    created_at: datetime
    deleted_at: datetime | None = None


class CostInput(BaseModel):
    """Costing input of a design; expires_at bounds how long a quote may use it"""

    id: str
    design_id: str
    created_at: datetime
    expires_at: datetime | None = None
