"""
Invoice Models

Checkout produces one invoice per collection. Invoices are never edited:
a reversal adds a credit note, and an invoice whose credit notes cover its
total is no longer active.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class LineItem(BaseModel):
    id: str
    invoice_id: str
    design_id: str
    quote_id: str
    title: str
    created_at: datetime


class Invoice(BaseModel):
    id: str
    collection_id: str
    total_cents: int = Field(..., ge=0)
    created_at: datetime


class CreditNote(BaseModel):
    id: str
    invoice_id: str
    reason: str
    total_cents: int = Field(..., ge=0)
    created_by: str
    created_at: datetime
    line_item_ids: list[str] = Field(default_factory=list)
