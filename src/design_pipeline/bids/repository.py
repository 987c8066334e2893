"""Bid, bid task type and bid rejection persistence"""

import sqlite3

from design_pipeline.bids.models import (
    Assignee,
    AssigneeType,
    Bid,
    BidRejection,
    BidRejectionReasons,
    TaskType,
)
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import BidNotFound
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp


class BidRepository:
    """
    Stores the immutable facts of a bid

    There is no state column: callers derive state from design events with
    bids.state_machine.determine_state_from_events.
    """

    def create(self, trx: Transaction, bid: Bid) -> Bid:
        trx.execute(
            """
            INSERT INTO bids (
                id, quote_id, created_at, created_by, due_date, description,
                bid_price_cents, assignee_type, assignee_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                bid.id,
                bid.quote_id,
                to_db_timestamp(bid.created_at),
                bid.created_by,
                to_db_timestamp(bid.due_date),
                bid.description,
                bid.bid_price_cents,
                bid.assignee.type.value,
                bid.assignee.id,
            ),
        )
        trx.executemany(
            "INSERT INTO bid_task_types (bid_id, task_type) VALUES (?, ?)",
            [(bid.id, task_type.value) for task_type in dict.fromkeys(bid.task_types)],
        )
        return bid

    def find_by_id(self, trx: Transaction, bid_id: str) -> Bid | None:
        row = trx.fetchone("SELECT * FROM bids WHERE id = ?", (bid_id,))
        return self._row_to_bid(trx, row) if row else None

    def get(self, trx: Transaction, bid_id: str) -> Bid:
        bid = self.find_by_id(trx, bid_id)
        if bid is None:
            raise BidNotFound(bid_id)
        return bid

    def find_by_quote_and_assignee(
        self, trx: Transaction, quote_id: str, assignee: Assignee
    ) -> list[Bid]:
        rows = trx.fetchall(
            """
            SELECT * FROM bids
            WHERE quote_id = ? AND assignee_type = ? AND assignee_id = ?
            ORDER BY created_at ASC
            """,
            (quote_id, assignee.type.value, assignee.id),
        )
        return [self._row_to_bid(trx, row) for row in rows]

    def create_rejection(self, trx: Transaction, rejection: BidRejection) -> BidRejection:
        reasons = rejection.reasons
        trx.execute(
            """
            INSERT INTO bid_rejections (
                id, bid_id, created_at, created_by, price_too_low,
                deadline_too_short, missing_information, other, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                rejection.id,
                rejection.bid_id,
                to_db_timestamp(rejection.created_at),
                rejection.created_by,
                reasons.price_too_low,
                reasons.deadline_too_short,
                reasons.missing_information,
                reasons.other,
                reasons.notes,
            ),
        )
        return rejection

    def find_rejection(self, trx: Transaction, bid_id: str) -> BidRejection | None:
        row = trx.fetchone("SELECT * FROM bid_rejections WHERE bid_id = ?", (bid_id,))
        if row is None:
            return None
        return BidRejection(
            id=row["id"],
            bid_id=row["bid_id"],
            created_at=from_db_timestamp(row["created_at"]),
            created_by=row["created_by"],
            reasons=BidRejectionReasons(
                price_too_low=bool(row["price_too_low"]),
                deadline_too_short=bool(row["deadline_too_short"]),
                missing_information=bool(row["missing_information"]),
                other=bool(row["other"]),
                notes=row["notes"],
            ),
        )

    def _row_to_bid(self, trx: Transaction, row: sqlite3.Row) -> Bid:
        task_rows = trx.fetchall(
            "SELECT task_type FROM bid_task_types WHERE bid_id = ? ORDER BY rowid",
            (row["id"],),
        )
        return Bid(
            id=row["id"],
            quote_id=row["quote_id"],
            created_at=from_db_timestamp(row["created_at"]),
            created_by=row["created_by"],
            due_date=from_db_timestamp(row["due_date"]),
            description=row["description"],
            bid_price_cents=row["bid_price_cents"],
            assignee=Assignee(
                type=AssigneeType(row["assignee_type"]), id=row["assignee_id"]
            ),
            task_types=[TaskType(r["task_type"]) for r in task_rows],
        )
