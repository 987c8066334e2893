"""
Design Event Store - append-only log of design events

The store is the source of truth for derived bid state and the audit trail of
every step and submission change. It provides:
- Append-only semantics (no update or delete statements exist)
- One accept/reject decision per bid, enforced by a partial unique index
- A total read order: created_at ascending, then insertion sequence

All methods run inside the caller's transaction; the store never commits.
"""

import sqlite3
from collections.abc import Iterable
from typing import Any

from design_pipeline.events.models import (
    ACTIVITY_STREAM_EVENTS,
    BID_DECISION_EVENTS,
    DesignEvent,
    DesignEventType,
)
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import DuplicateAcceptRejectError
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.metrics import design_events_appended_total
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "created_at",
    "actor_id",
    "target_id",
    "target_team_id",
    "design_id",
    "type",
    "bid_id",
    "quote_id",
    "approval_step_id",
    "approval_submission_id",
    "comment_id",
    "task_type_id",
)

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM design_events"
_ORDER = "ORDER BY created_at ASC, seq ASC"

# Columns usable as equality filters in find()
_FILTERABLE = frozenset(_COLUMNS) - {"created_at"}


class DesignEventStore:
    """
    Repository for the design_events table

    Schema (see kernel.schema):
    - seq AUTOINCREMENT: insertion order, breaks created_at ties
    - one_accept_or_reject_per_bid: UNIQUE(bid_id) for accept/reject types
    """

    def append(self, trx: Transaction, event: DesignEvent) -> DesignEvent:
        """
        Append one event inside the caller's transaction

        Raises:
            DuplicateAcceptRejectError: If the bid already has an accept/reject event
            sqlite3.Error: Any other failure (foreign keys, duplicate id), unchanged
        """
        try:
            self._insert(trx, event)
        except sqlite3.IntegrityError as e:
            if self._is_duplicate_decision(e, event):
                raise DuplicateAcceptRejectError(event.bid_id) from e
            raise

        self._record(trx, event)
        return event

    def append_all(self, trx: Transaction, events: Iterable[DesignEvent]) -> list[DesignEvent]:
        """
        Append several events

        No partial application: the first failure propagates and the caller's
        transaction rolls back every row written by it.
        """
        return [self.append(trx, event) for event in events]

    def find(
        self,
        trx: Transaction,
        *,
        types: Iterable[DesignEventType] | None = None,
        **filters: Any,
    ) -> list[DesignEvent]:
        """
        Find events by column equality, optionally restricted to event types

        Example:
            >>> store.find(trx, design_id="d-1", types=[DesignEventType.STEP_COMPLETE])
        """
        conditions: list[str] = []
        params: list[Any] = []

        for column, value in sorted(filters.items()):
            if column not in _FILTERABLE:
                raise ValueError(f"Cannot filter design events by {column!r}")
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = ?")
                params.append(value.value if isinstance(value, DesignEventType) else value)

        if types is not None:
            type_values = sorted(DesignEventType(t).value for t in types)
            if not type_values:
                return []
            conditions.append(f"type IN ({', '.join('?' for _ in type_values)})")
            params.extend(type_values)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        rows = trx.fetchall(f"{_SELECT} WHERE {where_clause} {_ORDER}", params)
        return [self._row_to_event(row) for row in rows]

    def find_by_id(self, trx: Transaction, event_id: str) -> DesignEvent | None:
        row = trx.fetchone(f"{_SELECT} WHERE id = ?", (event_id,))
        return self._row_to_event(row) if row else None

    def find_by_design(self, trx: Transaction, design_id: str) -> list[DesignEvent]:
        return self.find(trx, design_id=design_id)

    def find_by_bid(self, trx: Transaction, bid_id: str) -> list[DesignEvent]:
        return self.find(trx, bid_id=bid_id)

    def find_by_step(
        self, trx: Transaction, design_id: str, step_id: str
    ) -> list[DesignEvent]:
        """
        Activity stream of an approval step

        Includes design-wide events (no step id) of activity stream types,
        so a step's history shows e.g. the quote commit that opened it.
        """
        type_values = sorted(t.value for t in ACTIVITY_STREAM_EVENTS)
        rows = trx.fetchall(
            f"""
            {_SELECT}
            WHERE design_id = ?
              AND (approval_step_id = ? OR approval_step_id IS NULL)
              AND type IN ({', '.join('?' for _ in type_values)})
            {_ORDER}
            """,
            (design_id, step_id, *type_values),
        )
        return [self._row_to_event(row) for row in rows]

    def find_by_submission(self, trx: Transaction, submission_id: str) -> list[DesignEvent]:
        return self.find(trx, approval_submission_id=submission_id)

    def has_partner_pairing(self, trx: Transaction, step_id: str) -> bool:
        row = trx.fetchone(
            "SELECT 1 FROM design_events WHERE approval_step_id = ? AND type = ? LIMIT 1",
            (step_id, DesignEventType.STEP_PARTNER_PAIRING.value),
        )
        return row is not None

    def count(self, trx: Transaction) -> int:
        return trx.fetchone("SELECT COUNT(*) FROM design_events")[0]

    def _insert(self, trx: Transaction, event: DesignEvent) -> None:
        trx.execute(
            f"""
            INSERT INTO design_events ({', '.join(_COLUMNS)})
            VALUES ({', '.join('?' for _ in _COLUMNS)})
            """,
            (
                event.id,
                to_db_timestamp(event.created_at),
                event.actor_id,
                event.target_id,
                event.target_team_id,
                event.design_id,
                event.type.value,
                event.bid_id,
                event.quote_id,
                event.approval_step_id,
                event.approval_submission_id,
                event.comment_id,
                event.task_type_id,
            ),
        )

    def _is_duplicate_decision(self, error: sqlite3.IntegrityError, event: DesignEvent) -> bool:
        # SQLite names the indexed column: "UNIQUE constraint failed: design_events.bid_id"
        return (
            event.type in BID_DECISION_EVENTS
            and "design_events.bid_id" in str(error).lower()
        )

    def _record(self, trx: Transaction, event: DesignEvent) -> None:
        trx.appended_events.append(event)
        design_events_appended_total.labels(event_type=event.type.value).inc()
        logger.debug(
            "Design event appended",
            event_type=event.type.value,
            event_id=event.id,
            design_id=event.design_id,
            bid_id=event.bid_id,
            approval_step_id=event.approval_step_id,
        )

    def _row_to_event(self, row: sqlite3.Row) -> DesignEvent:
        return DesignEvent(
            id=row["id"],
            created_at=from_db_timestamp(row["created_at"]),
            actor_id=row["actor_id"],
            target_id=row["target_id"],
            target_team_id=row["target_team_id"],
            design_id=row["design_id"],
            type=DesignEventType(row["type"]),
            bid_id=row["bid_id"],
            quote_id=row["quote_id"],
            approval_step_id=row["approval_step_id"],
            approval_submission_id=row["approval_submission_id"],
            comment_id=row["comment_id"],
            task_type_id=row["task_type_id"],
        )
