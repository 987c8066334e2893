"""Pricing quote repository"""

import sqlite3

from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import QuoteNotFound
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp
from design_pipeline.pricing.models import PricingQuote


class PricingQuoteRepository:
    def create(self, trx: Transaction, quote: PricingQuote) -> PricingQuote:
        trx.execute(
            """
            INSERT INTO pricing_quotes (id, design_id, units, unit_cost_cents, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                quote.id,
                quote.design_id,
                quote.units,
                quote.unit_cost_cents,
                to_db_timestamp(quote.created_at),
            ),
        )
        trx.executemany(
            "INSERT INTO pricing_quote_processes (quote_id, name) VALUES (?, ?)",
            [(quote.id, name) for name in dict.fromkeys(quote.processes)],
        )
        return quote

    def find_by_id(self, trx: Transaction, quote_id: str) -> PricingQuote | None:
        row = trx.fetchone("SELECT * FROM pricing_quotes WHERE id = ?", (quote_id,))
        return self._row_to_quote(trx, row) if row else None

    def get(self, trx: Transaction, quote_id: str) -> PricingQuote:
        quote = self.find_by_id(trx, quote_id)
        if quote is None:
            raise QuoteNotFound(quote_id)
        return quote

    def find_latest_by_design(self, trx: Transaction, design_id: str) -> PricingQuote | None:
        row = trx.fetchone(
            """
            SELECT * FROM pricing_quotes
            WHERE design_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (design_id,),
        )
        return self._row_to_quote(trx, row) if row else None

    def lock_for_update(self, trx: Transaction, quote_id: str) -> None:
        """
        Take the write lock for a quote row

        SQLite has no SELECT ... FOR UPDATE; a no-op UPDATE inside the
        IMMEDIATE transaction holds the database write lock until commit or
        rollback, so concurrent bid creation on the quote waits here.

        Raises:
            QuoteNotFound: If the quote does not exist
        """
        cursor = trx.execute("UPDATE pricing_quotes SET id = id WHERE id = ?", (quote_id,))
        if cursor.rowcount == 0:
            raise QuoteNotFound(quote_id)

    def _row_to_quote(self, trx: Transaction, row: sqlite3.Row) -> PricingQuote:
        processes = trx.fetchall(
            "SELECT name FROM pricing_quote_processes WHERE quote_id = ? ORDER BY rowid",
            (row["id"],),
        )
        return PricingQuote(
            id=row["id"],
            design_id=row["design_id"],
            units=row["units"],
            unit_cost_cents=row["unit_cost_cents"],
            processes=[p["name"] for p in processes],
            created_at=from_db_timestamp(row["created_at"]),
        )
