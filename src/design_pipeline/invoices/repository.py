"""Invoice, line item and credit note persistence"""

import sqlite3
from collections.abc import Iterable

from design_pipeline.invoices.models import CreditNote, Invoice, LineItem
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp


class InvoiceRepository:
    def create(
        self, trx: Transaction, invoice: Invoice, line_items: Iterable[LineItem] = ()
    ) -> Invoice:
        trx.execute(
            "INSERT INTO invoices (id, collection_id, total_cents, created_at) "
            "VALUES (?, ?, ?, ?)",
            (
                invoice.id,
                invoice.collection_id,
                invoice.total_cents,
                to_db_timestamp(invoice.created_at),
            ),
        )
        trx.executemany(
            """
            INSERT INTO line_items (id, invoice_id, design_id, quote_id, title, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    item.id,
                    item.invoice_id,
                    item.design_id,
                    item.quote_id,
                    item.title,
                    to_db_timestamp(item.created_at),
                )
                for item in line_items
            ],
        )
        return invoice

    def find_by_collection(self, trx: Transaction, collection_id: str) -> list[Invoice]:
        rows = trx.fetchall(
            "SELECT * FROM invoices WHERE collection_id = ? ORDER BY created_at ASC, rowid ASC",
            (collection_id,),
        )
        return [self._row_to_invoice(row) for row in rows]

    def find_line_items(self, trx: Transaction, invoice_id: str) -> list[LineItem]:
        rows = trx.fetchall(
            "SELECT * FROM line_items WHERE invoice_id = ? ORDER BY created_at ASC, rowid ASC",
            (invoice_id,),
        )
        return [
            LineItem(
                id=row["id"],
                invoice_id=row["invoice_id"],
                design_id=row["design_id"],
                quote_id=row["quote_id"],
                title=row["title"],
                created_at=from_db_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    def remaining_cents(self, trx: Transaction, invoice: Invoice) -> int:
        """Invoice total minus everything already credited"""
        row = trx.fetchone(
            "SELECT COALESCE(SUM(total_cents), 0) FROM credit_notes WHERE invoice_id = ?",
            (invoice.id,),
        )
        return invoice.total_cents - row[0]

    def create_credit_note(self, trx: Transaction, credit_note: CreditNote) -> CreditNote:
        trx.execute(
            """
            INSERT INTO credit_notes (id, invoice_id, reason, total_cents, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                credit_note.id,
                credit_note.invoice_id,
                credit_note.reason,
                credit_note.total_cents,
                credit_note.created_by,
                to_db_timestamp(credit_note.created_at),
            ),
        )
        trx.executemany(
            "INSERT INTO credit_note_line_items (credit_note_id, line_item_id) VALUES (?, ?)",
            [(credit_note.id, line_item_id) for line_item_id in credit_note.line_item_ids],
        )
        return credit_note

    def find_credit_notes(self, trx: Transaction, invoice_id: str) -> list[CreditNote]:
        rows = trx.fetchall(
            "SELECT * FROM credit_notes WHERE invoice_id = ? ORDER BY created_at ASC, rowid ASC",
            (invoice_id,),
        )
        notes = []
        for row in rows:
            items = trx.fetchall(
                "SELECT line_item_id FROM credit_note_line_items WHERE credit_note_id = ?",
                (row["id"],),
            )
            notes.append(
                CreditNote(
                    id=row["id"],
                    invoice_id=row["invoice_id"],
                    reason=row["reason"],
                    total_cents=row["total_cents"],
                    created_by=row["created_by"],
                    created_at=from_db_timestamp(row["created_at"]),
                    line_item_ids=[item["line_item_id"] for item in items],
                )
            )
        return notes

    def _row_to_invoice(self, row: sqlite3.Row) -> Invoice:
        return Invoice(
            id=row["id"],
            collection_id=row["collection_id"],
            total_cents=row["total_cents"],
            created_at=from_db_timestamp(row["created_at"]),
        )
