"""
Design Pipeline CLI

Command-line interface for inspecting and operating a pipeline database.

Usage:
    design-pipeline init --db pipeline.db
    design-pipeline events --design <design_id>
    design-pipeline bid-state --bid <bid_id>
    design-pipeline steps --design <design_id>
    design-pipeline reverse-checkout --collection <collection_id> --actor <user_id>
    design-pipeline reject-collection --collection <collection_id> --actor <user_id>
"""

import json
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from design_pipeline.kernel.errors import PipelineError
from design_pipeline.kernel.logging import configure_logging
from design_pipeline.kernel.retry import retry_on_sqlite_lock
from design_pipeline.pipeline import Pipeline

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="INFO")

app = typer.Typer(
    name="design-pipeline",
    help="Design Pipeline - event log and approval step engine",
    add_completion=False,
)

DEFAULT_DB = Path(".design_pipeline.db")


def get_pipeline(db_path: Optional[Path] = None) -> Pipeline:
    """Get Pipeline instance for an existing database"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'design-pipeline init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return Pipeline(str(db))


def fail(error: PipelineError) -> None:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


@app.command()
def init(
    db: Annotated[
        Path,
        typer.Option(help="Database path"),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a new pipeline database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    Pipeline(str(db))
    typer.echo(f"✓ Initialized pipeline database: {db}")


@app.command()
def events(
    design: Annotated[str, typer.Option("--design", help="Design ID")],
    step: Annotated[
        Optional[str],
        typer.Option("--step", help="Only the activity stream of this step"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """List the design events of a design, oldest first"""
    pipeline = get_pipeline(db)
    if step:
        found = pipeline.step_activity(design, step)
    else:
        found = pipeline.find_events(design_id=design)

    if json_output:
        typer.echo(json.dumps([e.model_dump() for e in found], indent=2, default=str))
        return

    if not found:
        typer.echo("No events found")
        return

    typer.echo(f"Events ({len(found)}):")
    for event in found:
        typer.echo(f"  {event.created_at.isoformat()}  {event.type.value}")
        if event.bid_id:
            typer.echo(f"    Bid: {event.bid_id}")
        if event.approval_step_id:
            typer.echo(f"    Step: {event.approval_step_id}")


@app.command("bid-state")
def bid_state(
    bid: Annotated[str, typer.Option("--bid", help="Bid ID")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show the derived state of a bid"""
    pipeline = get_pipeline(db)
    try:
        state = pipeline.bid_state(bid)
    except PipelineError as e:
        fail(e)
    typer.echo(state.value)


@app.command()
def steps(
    design: Annotated[str, typer.Option("--design", help="Design ID")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show the approval steps of a design"""
    pipeline = get_pipeline(db)
    found = pipeline.get_steps(design)

    if json_output:
        typer.echo(json.dumps([s.model_dump() for s in found], indent=2, default=str))
        return

    if not found:
        typer.echo(f"No approval steps for design {design}")
        return

    for step in found:
        line = f"  {step.ordering}. {step.title:<18} {step.state.value}"
        if step.reason:
            line += f" ({step.reason})"
        typer.echo(line)


@app.command("reverse-checkout")
def reverse_checkout(
    collection: Annotated[str, typer.Option("--collection", help="Collection ID")],
    actor: Annotated[str, typer.Option("--actor", help="Acting user ID")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Credit a collection's invoice and send its designs back to checkout"""
    pipeline = get_pipeline(db)

    @retry_on_sqlite_lock()
    def run() -> list:
        return pipeline.reverse_collection_checkout(collection, actor_id=actor)

    try:
        reversed_events = run()
    except PipelineError as e:
        fail(e)

    typer.echo(f"✓ Reversed checkout of collection {collection}")
    typer.echo(f"  Designs: {len(reversed_events)}")


@app.command("reject-collection")
def reject_collection(
    collection: Annotated[str, typer.Option("--collection", help="Collection ID")],
    actor: Annotated[str, typer.Option("--actor", help="Acting user ID")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Reject every design of a collection still waiting at checkout"""
    pipeline = get_pipeline(db)

    @retry_on_sqlite_lock()
    def run() -> list:
        return pipeline.reject_collection(collection, actor_id=actor)

    try:
        rejected = run()
    except PipelineError as e:
        fail(e)

    if not rejected:
        typer.echo(f"No designs awaiting checkout in collection {collection}")
        return
    typer.echo(f"✓ Rejected {len(rejected)} design(s) in collection {collection}")


if __name__ == "__main__":
    app()
