"""Collaborator and team membership lookups"""

import sqlite3
from datetime import datetime

from design_pipeline.collaborators.models import Collaborator, CollaboratorRole, TeamUser
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import CollaboratorNotFound, TeamUserNotFound
from design_pipeline.kernel.time import from_db_timestamp, to_db_timestamp


class CollaboratorRepository:
    def create(self, trx: Transaction, collaborator: Collaborator) -> Collaborator:
        trx.execute(
            """
            INSERT INTO collaborators (
                id, design_id, user_id, team_id, role, created_at, cancelled_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                collaborator.id,
                collaborator.design_id,
                collaborator.user_id,
                collaborator.team_id,
                collaborator.role.value,
                to_db_timestamp(collaborator.created_at),
                to_db_timestamp(collaborator.cancelled_at),
            ),
        )
        return collaborator

    def find_by_id(self, trx: Transaction, collaborator_id: str) -> Collaborator | None:
        row = trx.fetchone("SELECT * FROM collaborators WHERE id = ?", (collaborator_id,))
        return self._row_to_collaborator(row) if row else None

    def get(self, trx: Transaction, collaborator_id: str) -> Collaborator:
        collaborator = self.find_by_id(trx, collaborator_id)
        if collaborator is None:
            raise CollaboratorNotFound(collaborator_id)
        return collaborator

    def find_by_design_and_user(
        self, trx: Transaction, design_id: str, user_id: str
    ) -> Collaborator | None:
        """Most recent collaborator of the user on the design, cancelled or not"""
        row = trx.fetchone(
            """
            SELECT * FROM collaborators
            WHERE design_id = ? AND user_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (design_id, user_id),
        )
        return self._row_to_collaborator(row) if row else None

    def find_by_design_and_team(
        self, trx: Transaction, design_id: str, team_id: str
    ) -> Collaborator | None:
        row = trx.fetchone(
            """
            SELECT * FROM collaborators
            WHERE design_id = ? AND team_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (design_id, team_id),
        )
        return self._row_to_collaborator(row) if row else None

    def update(
        self,
        trx: Transaction,
        collaborator: Collaborator,
        *,
        role: CollaboratorRole,
        cancelled_at: datetime | None,
    ) -> Collaborator:
        trx.execute(
            "UPDATE collaborators SET role = ?, cancelled_at = ? WHERE id = ?",
            (role.value, to_db_timestamp(cancelled_at), collaborator.id),
        )
        return collaborator.model_copy(update={"role": role, "cancelled_at": cancelled_at})

    def _row_to_collaborator(self, row: sqlite3.Row) -> Collaborator:
        return Collaborator(
            id=row["id"],
            design_id=row["design_id"],
            user_id=row["user_id"],
            team_id=row["team_id"],
            role=CollaboratorRole(row["role"]),
            created_at=from_db_timestamp(row["created_at"]),
            cancelled_at=from_db_timestamp(row["cancelled_at"]),
        )


class TeamUserRepository:
    def create(self, trx: Transaction, team_user: TeamUser) -> TeamUser:
        trx.execute(
            "INSERT INTO team_users (id, team_id, user_id) VALUES (?, ?, ?)",
            (team_user.id, team_user.team_id, team_user.user_id),
        )
        return team_user

    def get(self, trx: Transaction, team_user_id: str) -> TeamUser:
        row = trx.fetchone("SELECT * FROM team_users WHERE id = ?", (team_user_id,))
        if row is None:
            raise TeamUserNotFound(team_user_id)
        return TeamUser(id=row["id"], team_id=row["team_id"], user_id=row["user_id"])

    def is_member(self, trx: Transaction, team_id: str, user_id: str) -> bool:
        row = trx.fetchone(
            "SELECT 1 FROM team_users WHERE team_id = ? AND user_id = ?",
            (team_id, user_id),
        )
        return row is not None
