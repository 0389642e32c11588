"""CLI for the workout composition engine.

Developer CLI to inspect the packaged blueprints and preview generated
sessions against the sample exercise catalog, using the same pipeline as
library callers.
"""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from workout_engine.composition.blueprint_catalog import load_blueprint_catalog
from workout_engine.composition.context import build_generation_context
from workout_engine.composition.enums import Location
from workout_engine.composition.errors import CompositionError
from workout_engine.composition.exercise_catalog import InMemoryExerciseCatalog, load_exercise_catalog
from workout_engine.composition.models import FilledSlot, GeneratedSession, UserProfile
from workout_engine.composition.session_builder import generate_session, session_to_json
from workout_engine.composition.shadow_matrix import create_default_shadow_matrix, with_global_level
from workout_engine.config.settings import settings
from workout_engine.core.logger import setup_logger

# Initialize Rich console for output
console = Console()

# Initialize Typer app
app = typer.Typer(
    name="workout-engine",
    help="Workout engine CLI - inspect blueprints and preview generated sessions",
    add_completion=False,
)

CLI_USER_ID = "cli-user"


def _setup_logging(debug: bool = False, quiet: bool = False, log_file: str | None = None) -> None:
    """Set up console logging, plus a JSON-lines file sink when requested.

    Args:
        debug: Enable debug logging level
        quiet: Only log errors (keeps machine-readable stdout clean)
        log_file: Path for structured generation events
    """
    if quiet:
        level = "ERROR"
    elif debug:
        level = "DEBUG"
    else:
        level = settings.log_level
    setup_logger(level=level, log_file=log_file or settings.log_file, serialize=True)


def _slots_table(title: str, slots: list[FilledSlot]) -> Table:
    table = Table(title=title)
    table.add_column("Slot", style="cyan")
    table.add_column("Exercise")
    table.add_column("Sets", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("Rest", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Fill")
    for filled in slots:
        exercise = filled.exercise
        reps = f"{exercise.duration_seconds}s" if exercise.duration_seconds is not None else str(exercise.reps)
        table.add_row(
            filled.slot.id,
            exercise.display_name,
            str(exercise.sets),
            reps,
            f"{exercise.rest_seconds}s",
            str(filled.resolved_level),
            filled.fill_stage.value,
        )
    return table


def _print_session(session: GeneratedSession) -> None:
    result = session.fragmentation
    console.print(f"[bold]{session.name}[/bold] ({session.blueprint_id})")
    console.print(f"Session id: {session.id}")
    console.print(f"Fragmented: {'yes' if session.is_fragmented else 'no'}")
    console.print(f"Reason: {result.reason.value}")
    console.print(f"Total duration: {session.total_duration} min")

    if session.is_fragmented:
        for fragment in session.fragments:
            console.print(f"\n[green]Part {fragment.part.value}: {fragment.name} - {fragment.estimated_duration} min[/green]")
            console.print(_slots_table(f"Part {fragment.part.value}", fragment.slots))
    else:
        console.print(_slots_table("Session", session.slots))

    for warning in session.warnings:
        slot = f" [{warning.slot_id}]" if warning.slot_id else ""
        console.print(f"[yellow]Warning {warning.code}{slot}:[/yellow] {warning.message}")


@app.command()
def blueprints(
    blueprints_dir: str | None = typer.Option(None, "--blueprints-dir", help="Directory with blueprint YAML files"),
) -> None:
    """List the available blueprint archetypes."""
    try:
        catalog = load_blueprint_catalog(blueprints_dir)
    except (CompositionError, RuntimeError) as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    table = Table(title="Blueprints")
    table.add_column("Archetype", style="cyan", no_wrap=True)
    table.add_column("Focus")
    table.add_column("Intensity")
    table.add_column("Minutes", justify="right")
    table.add_column("Slots", justify="right")
    table.add_column("Split")
    for archetype_id in sorted(catalog):
        blueprint = catalog[archetype_id]
        table.add_row(
            blueprint.id,
            blueprint.focus.value,
            blueprint.intensity.value,
            f"{blueprint.min_duration}/{blueprint.target_duration}/{blueprint.max_duration}",
            str(len(blueprint.slots)),
            "yes" if blueprint.can_fragment else "no",
        )
    console.print(table)


@app.command()
def preview(
    archetype: str = typer.Argument(..., help="Blueprint archetype id"),
    time_available: int = typer.Option(45, "--time", "-t", help="Minutes available"),
    location: Location = typer.Option(Location.HOME, "--location", "-l", help="Where the session happens"),
    equipment: list[str] | None = typer.Option(None, "--equipment", "-e", help="Available equipment (repeatable)"),
    injury: list[str] | None = typer.Option(None, "--injury", "-i", help="Injured body area (repeatable)"),
    global_level: int | None = typer.Option(None, "--global-level", help="Apply one level to every slot (1-20)"),
    catalog_path: str | None = typer.Option(None, "--catalog", help="Exercise catalog YAML"),
    blueprints_dir: str | None = typer.Option(None, "--blueprints-dir", help="Directory with blueprint YAML files"),
    as_json: bool = typer.Option(False, "--json", help="Print the session as JSON"),
    log_file: str | None = typer.Option(None, "--log-file", help="Write generation events as JSON lines"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Generate a session and show how it was split."""
    _setup_logging(debug=debug, quiet=as_json, log_file=log_file)

    matrix = create_default_shadow_matrix()
    if global_level is not None:
        matrix = with_global_level(matrix, global_level)

    profile = UserProfile(user_id=CLI_USER_ID)
    try:
        context = build_generation_context(
            profile,
            location,
            time_available,
            equipment_override=equipment or None,
            injury_override=injury or None,
            shadow_matrix_override=matrix,
        )
        catalog = InMemoryExerciseCatalog(load_exercise_catalog(Path(catalog_path) if catalog_path else None))
        session = asyncio.run(generate_session(archetype, context, catalog, blueprints_dir=blueprints_dir))
    except (CompositionError, RuntimeError, ValueError) as e:
        logger.error(f"Preview failed: {e}")
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    if as_json:
        typer.echo(session_to_json(session, indent=2))
        return
    _print_session(session)


if __name__ == "__main__":
    app()
