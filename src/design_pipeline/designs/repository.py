"""Design and cost input repositories"""

import sqlite3
from datetime import datetime

from design_pipeline.designs.models import Complexity, CostInput, Design
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import DesignNotFound
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp


class DesignRepository:
    def create(self, trx: Transaction, design: Design) -> Design:
        trx.execute(
            """
            INSERT INTO designs (
                id, user_id, collection_id, title, complexity, created_at, deleted_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                design.id,
                design.user_id,
                design.collection_id,
                design.title,
                design.complexity.value,
                to_db_timestamp(design.created_at),
                to_db_timestamp(design.deleted_at),
            ),
        )
        return design

    def find_by_id(self, trx: Transaction, design_id: str) -> Design | None:
        row = trx.fetchone("SELECT * FROM designs WHERE id = ?", (design_id,))
        return self._row_to_design(row) if row else None

    def get(self, trx: Transaction, design_id: str) -> Design:
        design = self.find_by_id(trx, design_id)
        if design is None:
            raise DesignNotFound(design_id)
        return design

    def find_by_collection(self, trx: Transaction, collection_id: str) -> list[Design]:
        """Non-deleted designs of a collection, oldest first"""
        rows = trx.fetchall(
            """
            SELECT * FROM designs
            WHERE collection_id = ? AND deleted_at IS NULL
            ORDER BY created_at ASC, id ASC
            """,
            (collection_id,),
        )
        return [self._row_to_design(row) for row in rows]

    def delete(self, trx: Transaction, design_id: str, now: datetime) -> None:
        trx.execute(
            "UPDATE designs SET deleted_at = ? WHERE id = ?",
            (to_db_timestamp(now), design_id),
        )

    def _row_to_design(self, row: sqlite3.Row) -> Design:
        return Design(
            id=row["id"],
            user_id=row["user_id"],
            collection_id=row["collection_id"],
            title=row["title"],
            complexity=Complexity(row["complexity"]),
            created_at=from_db_timestamp(row["created_at"]),
            deleted_at=from_db_timestamp(row["deleted_at"]),
        )


class CostInputRepository:
    def create(self, trx: Transaction, cost_input: CostInput) -> CostInput:
        trx.execute(
            "INSERT INTO pricing_cost_inputs (id, design_id, created_at, expires_at) "
            "VALUES (?, ?, ?, ?)",
            (
                cost_input.id,
                cost_input.design_id,
                to_db_timestamp(cost_input.created_at),
                to_db_timestamp(cost_input.expires_at),
            ),
        )
        return cost_input

    def find_by_design(self, trx: Transaction, design_id: str) -> list[CostInput]:
        rows = trx.fetchall(
            "SELECT * FROM pricing_cost_inputs WHERE design_id = ? ORDER BY created_at ASC",
            (design_id,),
        )
        return [
            CostInput(
                id=row["id"],
                design_id=row["design_id"],
                created_at=from_db_timestamp(row["created_at"]),
                expires_at=from_db_timestamp(row["expires_at"]),
            )
            for row in rows
        ]

    def expire_for_design(self, trx: Transaction, design_id: str, expires_at: datetime) -> int:
        """Set the expiry of every cost input of a design; returns rows touched"""
        cursor = trx.execute(
            "UPDATE pricing_cost_inputs SET expires_at = ? WHERE design_id = ?",
            (to_db_timestamp(expires_at), design_id),
        )
        return cursor.rowcount
