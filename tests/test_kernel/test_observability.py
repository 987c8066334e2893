"""
Tests for logging, metrics, retry and the event bus

These are the ambient pieces every workflow operation runs through.
"""

import sqlite3
from datetime import datetime, timezone

import pytest
from prometheus_client import REGISTRY

from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.kernel.bus import EventBus
from design_pipeline.kernel.logging import (
    LogOperation,
    configure_logging,
    get_logger,
    redact_context,
)
from design_pipeline.kernel.metrics import track_operation
from design_pipeline.kernel.retry import is_lock_contention, retry_on_sqlite_lock


def make_event(event_type: DesignEventType = DesignEventType.STEP_COMPLETE) -> DesignEvent:
    return create_design_event(
        design_id="design-1",
        actor_id="user-1",
        type=event_type,
        created_at=datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


class TestLogging:
    def setup_method(self) -> None:
        configure_logging(json_output=False, log_level="DEBUG")

    def test_redact_context_hides_people(self) -> None:
        """Actor and user ids are PII; design and bid ids are not"""
        redacted = redact_context({"actor_id": "u-1", "user_id": "u-2", "bid_id": "b-1"})

        assert redacted == {
            "actor_id": "***REDACTED***",
            "user_id": "***REDACTED***",
            "bid_id": "b-1",
        }

    def test_log_operation_propagates_errors(self) -> None:
        """LogOperation records the failure and never swallows it"""
        logger = get_logger(__name__)

        with pytest.raises(ValueError, match="bad"):
            with LogOperation(logger, "test_operation", bid_id="b-1"):
                raise ValueError("bad")


class TestMetrics:
    def test_track_operation_counts_outcomes(self) -> None:
        @track_operation("metrics_sample")
        def succeed() -> str:
            return "ok"

        @track_operation("metrics_sample")
        def fail() -> None:
            raise RuntimeError("nope")

        def sample(status: str) -> float:
            value = REGISTRY.get_sample_value(
                "design_pipeline_operations_total",
                {"operation": "metrics_sample", "status": status},
            )
            return value or 0.0

        successes, failures = sample("success"), sample("failure")

        assert succeed() == "ok"
        with pytest.raises(RuntimeError):
            fail()

        assert sample("success") == successes + 1
        assert sample("failure") == failures + 1


class TestRetry:
    def test_lock_contention_is_recognized(self) -> None:
        assert is_lock_contention(sqlite3.OperationalError("database is locked"))
        assert not is_lock_contention(sqlite3.OperationalError("no such table: bids"))
        assert not is_lock_contention(ValueError("locked"))

    def test_retries_locked_database_then_succeeds(self) -> None:
        attempts = []

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=2)
        def flaky() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "done"

        assert flaky() == "done"
        assert len(attempts) == 3

    def test_other_errors_are_not_retried(self) -> None:
        attempts = []

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=2)
        def broken() -> None:
            attempts.append(1)
            raise sqlite3.OperationalError("no such table: bids")

        with pytest.raises(sqlite3.OperationalError):
            broken()
        assert len(attempts) == 1


class TestEventBus:
    def test_handlers_receive_events_of_their_type(self) -> None:
        bus = EventBus()
        completed: list[DesignEvent] = []
        everything: list[DesignEvent] = []
        bus.subscribe(DesignEventType.STEP_COMPLETE, completed.append)
        bus.subscribe_all(everything.append)

        bus.publish_events(
            [make_event(), make_event(DesignEventType.STEP_REOPEN)]
        )

        assert [e.type for e in completed] == [DesignEventType.STEP_COMPLETE]
        assert len(everything) == 2

    def test_failing_handler_does_not_stop_others(self) -> None:
        """Events are already committed, so one bad subscriber is only logged"""
        bus = EventBus()
        received: list[DesignEvent] = []

        def explode(event: DesignEvent) -> None:
            raise RuntimeError("notification service down")

        bus.subscribe("STEP_COMPLETE", explode)
        bus.subscribe("STEP_COMPLETE", received.append)

        bus.publish_event(make_event())

        assert len(received) == 1

    def test_clear_removes_handlers(self) -> None:
        bus = EventBus()
        received: list[DesignEvent] = []
        bus.subscribe_all(received.append)
        bus.clear()

        bus.publish_event(make_event())

        assert received == []
