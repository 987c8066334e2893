"""Approval step submission persistence"""

import sqlite3
from collections.abc import Iterable
from datetime import datetime

from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import SubmissionNotFound
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp
from design_pipeline.submissions.models import (
    ApprovalStepSubmission,
    SubmissionArtifactType,
    SubmissionState,
)

_COLUMNS = (
    "id",
    "step_id",
    "title",
    "artifact_type",
    "state",
    "collaborator_id",
    "team_user_id",
    "created_at",
    "deleted_at",
)


class ApprovalSubmissionRepository:
    """
    CRUD for submissions; deleted rows are soft-deleted and hidden from reads
    """

    def create_all(
        self, trx: Transaction, submissions: Iterable[ApprovalStepSubmission]
    ) -> list[ApprovalStepSubmission]:
        created = list(submissions)
        trx.executemany(
            f"""
            INSERT INTO design_approval_submissions ({', '.join(_COLUMNS)})
            VALUES ({', '.join('?' for _ in _COLUMNS)})
            """,
            [
                (
                    s.id,
                    s.step_id,
                    s.title,
                    s.artifact_type.value,
                    s.state.value,
                    s.collaborator_id,
                    s.team_user_id,
                    to_db_timestamp(s.created_at),
                    to_db_timestamp(s.deleted_at),
                )
                for s in created
            ],
        )
        return created

    def find_by_id(self, trx: Transaction, submission_id: str) -> ApprovalStepSubmission | None:
        row = trx.fetchone(
            "SELECT * FROM design_approval_submissions WHERE id = ? AND deleted_at IS NULL",
            (submission_id,),
        )
        return self._row_to_submission(row) if row else None

    def get(self, trx: Transaction, submission_id: str) -> ApprovalStepSubmission:
        submission = self.find_by_id(trx, submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        return submission

    def find_by_step(self, trx: Transaction, step_id: str) -> list[ApprovalStepSubmission]:
        rows = trx.fetchall(
            """
            SELECT * FROM design_approval_submissions
            WHERE step_id = ? AND deleted_at IS NULL
            ORDER BY created_at ASC, rowid ASC
            """,
            (step_id,),
        )
        return [self._row_to_submission(row) for row in rows]

    def find_by_design(self, trx: Transaction, design_id: str) -> list[ApprovalStepSubmission]:
        """Submissions of every step of a design, in step order"""
        rows = trx.fetchall(
            """
            SELECT s.* FROM design_approval_submissions AS s
            JOIN design_approval_steps AS st ON st.id = s.step_id
            WHERE st.design_id = ? AND s.deleted_at IS NULL
            ORDER BY st.ordering ASC, s.created_at ASC, s.rowid ASC
            """,
            (design_id,),
        )
        return [self._row_to_submission(row) for row in rows]

    def update(
        self,
        trx: Transaction,
        submission: ApprovalStepSubmission,
        *,
        state: SubmissionState | None = None,
        collaborator_id: str | None = None,
        team_user_id: str | None = None,
        assignee: bool = False,
    ) -> ApprovalStepSubmission:
        """
        Update state and/or assignee

        The assignee columns are only written when assignee=True, so that
        None can mean "unassign".
        """
        values: dict = {}
        if state is not None:
            values["state"] = state
        if assignee:
            values["collaborator_id"] = collaborator_id
            values["team_user_id"] = team_user_id
        if not values:
            return submission

        assignments = ", ".join(f"{column} = ?" for column in values)
        trx.execute(
            f"UPDATE design_approval_submissions SET {assignments} WHERE id = ?",
            [
                *(v.value if isinstance(v, SubmissionState) else v for v in values.values()),
                submission.id,
            ],
        )
        return submission.model_copy(update=values)

    def delete(self, trx: Transaction, submission_id: str, now: datetime) -> None:
        trx.execute(
            "UPDATE design_approval_submissions SET deleted_at = ? WHERE id = ?",
            (to_db_timestamp(now), submission_id),
        )

    def _row_to_submission(self, row: sqlite3.Row) -> ApprovalStepSubmission:
        return ApprovalStepSubmission(
            id=row["id"],
            step_id=row["step_id"],
            title=row["title"],
            artifact_type=SubmissionArtifactType(row["artifact_type"]),
            state=SubmissionState(row["state"]),
            collaborator_id=row["collaborator_id"],
            team_user_id=row["team_user_id"],
            created_at=from_db_timestamp(row["created_at"]),
            deleted_at=from_db_timestamp(row["deleted_at"]),
        )
