"""
SQLite database and transaction management

Every workflow operation runs inside exactly one Database.transaction(). The
transaction is explicit (autocommit connection + BEGIN/COMMIT/ROLLBACK) so
that event appends, step cascades and submission creation commit or roll back
together.

Write transactions use BEGIN IMMEDIATE: the write lock is taken up front and a
concurrent writer blocks for up to busy_timeout_ms instead of failing fast.
"""

import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from design_pipeline.kernel.logging import get_logger
from design_pipeline.kernel.schema import SCHEMA_STATEMENTS

logger = get_logger(__name__)


class Transaction:
    """
    Handle passed to every repository call

    Holds the connection of the open transaction and collects the design
    events appended through it, which the façade publishes after commit.
    """

    def __init__(self, connection: sqlite3.Connection, read_only: bool = False) -> None:
        self.connection = connection
        self.read_only = read_only
        self.appended_events: list[Any] = []

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.connection.execute(sql, params)

    def executemany(self, sql: str, rows: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        return self.connection.executemany(sql, rows)

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        return self.connection.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return self.connection.execute(sql, params).fetchall()


class Database:
    """
    SQLite database holding the event log and all pipeline tables

    Connections are opened per transaction, so a Database can be shared by
    threads as long as each thread runs its own transactions.
    """

    def __init__(self, db_path: str | Path, busy_timeout_ms: int = 30_000) -> None:
        """
        Args:
            db_path: Path to SQLite database file (created if missing)
            busy_timeout_ms: How long a writer waits for the write lock
        """
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        logger.debug("Database schema ready", db_path=str(self.db_path))

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self, *, read_only: bool = False) -> Iterator[Transaction]:
        """
        Open a transaction; commit on success, roll back on any exception

        Args:
            read_only: Use a deferred transaction that never takes the write lock
        """
        with self._connect() as conn:
            conn.execute("BEGIN DEFERRED" if read_only else "BEGIN IMMEDIATE")
            trx = Transaction(conn, read_only=read_only)
            try:
                yield trx
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.debug(
                    "Transaction rolled back",
                    discarded_events=len(trx.appended_events),
                )
                raise
            conn.execute("COMMIT")
