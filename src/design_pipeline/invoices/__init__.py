"""Invoices - checkout payments and the credit notes that reverse them"""

from design_pipeline.invoices.models import CreditNote, Invoice, LineItem
from design_pipeline.invoices.repository import InvoiceRepository

__all__ = ["CreditNote", "Invoice", "InvoiceRepository", "LineItem"]
