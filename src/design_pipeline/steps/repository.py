"""
Approval Step Repository

Steps are only ever changed through update(), which stamps timestamps and
then runs the repository's listeners, in order, inside the same transaction.
The listener list is explicit and owned by the repository instance; there is
no global registration.
"""

import sqlite3
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import StepNotFound
from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.metrics import step_transitions_total
from design_pipeline.kernel.time import TimeProvider, from_db_timestamp, to_db_timestamp
from design_pipeline.steps.models import (
    ApprovalStep,
    ApprovalStepState,
    ApprovalStepType,
    StepChange,
)

logger = get_logger(__name__)

StepListener = Callable[[StepChange], None]

_COLUMNS = (
    "id",
    "design_id",
    "title",
    "ordering",
    "type",
    "state",
    "reason",
    "started_at",
    "completed_at",
    "due_at",
    "collaborator_id",
    "team_user_id",
    "created_at",
)

_UPDATABLE = frozenset(
    {"title", "state", "reason", "due_at", "collaborator_id", "team_user_id"}
)
_TIMESTAMP_COLUMNS = frozenset({"started_at", "completed_at", "due_at", "created_at"})

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM design_approval_steps"


class ApprovalStepRepository:
    """
    CRUD and ordered listing of approval steps

    Listeners run after every update with a StepChange; they may call
    update() again, which cascades depth-first.
    """

    def __init__(
        self,
        time_provider: TimeProvider,
        listeners: Sequence[StepListener] = (),
    ) -> None:
        self.time_provider = time_provider
        self.listeners: list[StepListener] = list(listeners)

    def create_all(self, trx: Transaction, steps: Iterable[ApprovalStep]) -> list[ApprovalStep]:
        created = list(steps)
        trx.executemany(
            f"""
            INSERT INTO design_approval_steps ({', '.join(_COLUMNS)})
            VALUES ({', '.join('?' for _ in _COLUMNS)})
            """,
            [self._to_row(step) for step in created],
        )
        return created

    def find_by_id(self, trx: Transaction, step_id: str) -> ApprovalStep | None:
        row = trx.fetchone(f"{_SELECT} WHERE id = ?", (step_id,))
        return self._row_to_step(row) if row else None

    def get(self, trx: Transaction, step_id: str) -> ApprovalStep:
        step = self.find_by_id(trx, step_id)
        if step is None:
            raise StepNotFound(step_id)
        return step

    def find_by_design(self, trx: Transaction, design_id: str) -> list[ApprovalStep]:
        """All steps of a design, ordered by ordering ascending"""
        rows = trx.fetchall(
            f"{_SELECT} WHERE design_id = ? ORDER BY ordering ASC", (design_id,)
        )
        return [self._row_to_step(row) for row in rows]

    def find_by_design_and_type(
        self, trx: Transaction, design_id: str, step_type: ApprovalStepType
    ) -> ApprovalStep | None:
        row = trx.fetchone(
            f"{_SELECT} WHERE design_id = ? AND type = ? ORDER BY ordering ASC LIMIT 1",
            (design_id, step_type.value),
        )
        return self._row_to_step(row) if row else None

    def update(self, trx: Transaction, step_id: str, patch: dict[str, Any]) -> ApprovalStep:
        """
        Apply a partial update, then run every listener

        A state in the patch stamps started_at/completed_at:
        CURRENT starts the step now, COMPLETED keeps the start and completes
        now, any other state clears both.

        Raises:
            StepNotFound: If the step does not exist
            ValueError: If the patch names a column that cannot be updated
        """
        unknown = set(patch) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update approval step fields: {sorted(unknown)}")

        before = self.get(trx, step_id)
        values = dict(patch)

        if "state" in values:
            state = ApprovalStepState(values["state"])
            values["state"] = state
            now = self.time_provider.now()
            if state == ApprovalStepState.CURRENT:
                values["started_at"] = now
                values["completed_at"] = None
            elif state == ApprovalStepState.COMPLETED:
                values["started_at"] = before.started_at or now
                values["completed_at"] = now
            else:
                values["started_at"] = None
                values["completed_at"] = None

        if values:
            assignments = ", ".join(f"{column} = ?" for column in values)
            trx.execute(
                f"UPDATE design_approval_steps SET {assignments} WHERE id = ?",
                [*(self._to_db(column, value) for column, value in values.items()), step_id],
            )

        updated = before.model_copy(update=values)

        if before.state != updated.state:
            step_transitions_total.labels(
                step_type=updated.type.value,
                from_state=before.state.value,
                to_state=updated.state.value,
            ).inc()
            logger.info(
                "Approval step transitioned",
                step_id=step_id,
                design_id=updated.design_id,
                step_type=updated.type.value,
                from_state=before.state.value,
                to_state=updated.state.value,
            )

        change = StepChange(trx=trx, before=before, updated=updated, repository=self)
        for listener in self.listeners:
            listener(change)

        return updated

    def _to_db(self, column: str, value: Any) -> Any:
        if column in _TIMESTAMP_COLUMNS:
            return to_db_timestamp(value)
        if isinstance(value, (ApprovalStepState, ApprovalStepType)):
            return value.value
        return value

    def _to_row(self, step: ApprovalStep) -> tuple[Any, ...]:
        return tuple(self._to_db(column, getattr(step, column)) for column in _COLUMNS)

    def _row_to_step(self, row: sqlite3.Row) -> ApprovalStep:
        return ApprovalStep(
            id=row["id"],
            design_id=row["design_id"],
            title=row["title"],
            ordering=row["ordering"],
            type=ApprovalStepType(row["type"]),
            state=ApprovalStepState(row["state"]),
            reason=row["reason"],
            started_at=from_db_timestamp(row["started_at"]),
            completed_at=from_db_timestamp(row["completed_at"]),
            due_at=from_db_timestamp(row["due_at"]),
            collaborator_id=row["collaborator_id"],
            team_user_id=row["team_user_id"],
            created_at=from_db_timestamp(row["created_at"]),
        )
