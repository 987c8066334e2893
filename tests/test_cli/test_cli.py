"""
CLI integration tests

Runs the design-pipeline commands through Typer's CliRunner against a
database seeded with the Pipeline API.

Fun fact: The first command-line interface (CLI) was created in 1964 for the
Dartmouth Time Sharing System!
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from design_pipeline.cli.main import app
from design_pipeline.pipeline import Pipeline
from tests.helpers import ADMIN, DESIGNER, PARTNER, SeededDesign, seed_design


@pytest.fixture
def runner():
    """Typer CLI test runner"""
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "pipeline.db"


@pytest.fixture
def seeded(db_path: Path) -> SeededDesign:
    """A design in collection-1 on a database the CLI can open"""
    return seed_design(Pipeline(db_path))


# =============================================================================
# Initialization
# =============================================================================


def test_init_creates_database(runner, db_path):
    result = runner.invoke(app, ["init", "--db", str(db_path)])

    assert result.exit_code == 0
    assert db_path.exists()
    assert "initialized" in result.stdout.lower()


def test_init_with_existing_database(runner, db_path):
    runner.invoke(app, ["init", "--db", str(db_path)])

    result = runner.invoke(app, ["init", "--db", str(db_path)])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_missing_database(runner, db_path):
    result = runner.invoke(app, ["steps", "--design", "d-1", "--db", str(db_path)])

    assert result.exit_code == 1
    assert "Database not found" in result.output


# =============================================================================
# Read commands
# =============================================================================


def test_steps(runner, db_path, seeded):
    result = runner.invoke(app, ["steps", "--design", seeded.design.id, "--db", str(db_path)])

    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert len(lines) == 4
    assert "Checkout" in lines[0] and "CURRENT" in lines[0]
    assert "BLOCKED" in lines[1]


def test_steps_json(runner, db_path, seeded):
    result = runner.invoke(
        app, ["steps", "--design", seeded.design.id, "--json", "--db", str(db_path)]
    )

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [s["ordering"] for s in data] == [0, 1, 2, 3]


def test_events(runner, db_path, seeded):
    Pipeline(db_path).commit_quote("collection-1", DESIGNER)

    result = runner.invoke(app, ["events", "--design", seeded.design.id, "--db", str(db_path)])

    assert result.exit_code == 0
    assert "COMMIT_QUOTE" in result.stdout


def test_events_empty(runner, db_path, seeded):
    result = runner.invoke(app, ["events", "--design", seeded.design.id, "--db", str(db_path)])

    assert result.exit_code == 0
    assert "No events found" in result.stdout


def test_bid_state(runner, db_path, seeded):
    pipeline = Pipeline(db_path)
    bid = pipeline.create_bid(
        seeded.quote.id, "USER", PARTNER, ["TECHNICAL_DESIGN"], actor_id=ADMIN
    )

    open_result = runner.invoke(app, ["bid-state", "--bid", bid.id, "--db", str(db_path)])
    pipeline.accept_bid(bid.id, PARTNER)
    accepted_result = runner.invoke(app, ["bid-state", "--bid", bid.id, "--db", str(db_path)])

    assert open_result.stdout.strip() == "OPEN"
    assert accepted_result.stdout.strip() == "ACCEPTED"


def test_bid_state_unknown_bid(runner, db_path, seeded):
    result = runner.invoke(app, ["bid-state", "--bid", "no-such-bid", "--db", str(db_path)])

    assert result.exit_code == 1
    assert "not found" in result.output


# =============================================================================
# Write commands
# =============================================================================


def test_reverse_checkout(runner, db_path, seeded):
    Pipeline(db_path).commit_quote("collection-1", DESIGNER)

    result = runner.invoke(
        app,
        [
            "reverse-checkout",
            "--collection", "collection-1",
            "--actor", ADMIN,
            "--db", str(db_path),
        ],
    )

    assert result.exit_code == 0
    assert "Reversed checkout" in result.stdout
    assert "Designs: 1" in result.stdout


def test_reverse_checkout_without_invoice(runner, db_path, seeded):
    result = runner.invoke(
        app,
        [
            "reverse-checkout",
            "--collection", "collection-1",
            "--actor", ADMIN,
            "--db", str(db_path),
        ],
    )

    assert result.exit_code == 1
    assert "Error" in result.output


def test_reject_collection(runner, db_path, seeded):
    args = ["reject-collection", "--collection", "collection-1", "--actor", ADMIN]

    result = runner.invoke(app, [*args, "--db", str(db_path)])

    assert result.exit_code == 0
    assert "Rejected 1 design(s)" in result.stdout


def test_reject_collection_nothing_waiting(runner, db_path, seeded):
    Pipeline(db_path).commit_quote("collection-1", DESIGNER)
    args = ["reject-collection", "--collection", "collection-1", "--actor", ADMIN]

    result = runner.invoke(app, [*args, "--db", str(db_path)])

    assert result.exit_code == 0
    assert "No designs awaiting checkout" in result.stdout
