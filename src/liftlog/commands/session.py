"""Live workout commands."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import click
import questionary

from ..client import HttpBackend, LocalBackend, Result, WorkoutSessionClient
from ..models.routine import Visibility
from ..models.workout_set import SetLabel, Side, WeightUnit
from .base import (
    async_command,
    custom_style,
    echo_info,
    echo_success,
    ensure_initialized,
    fail,
    format_duration,
    format_table,
    format_weight,
    get_user,
)


@asynccontextmanager
async def open_client(ctx: click.Context, restore: bool = True) -> AsyncIterator[WorkoutSessionClient]:
    """A session client for the acting user, optionally restored from the store."""
    user = get_user(ctx)
    if ctx.obj.get("remote"):
        backend = HttpBackend(user)
    else:
        ensure_initialized(ctx)
        backend = LocalBackend(user)

    client = WorkoutSessionClient(backend)
    try:
        if restore:
            check(ctx, await client.restore())
        yield client
    finally:
        await client.close()
        if isinstance(backend, HttpBackend):
            await backend.aclose()


def check(ctx: click.Context, result: Result) -> None:
    if not result.ok:
        fail(ctx, result.error.message)


def require_session(ctx: click.Context, client: WorkoutSessionClient) -> None:
    if not client.mirror.has_session:
        fail(ctx, "No workout in progress. Start one with 'liftlog session start ROUTINE_ID'.")


def parse_number(value: str | None, kind: type, name: str):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise click.BadParameter(f"{name} must be a number") from None


@click.group()
@click.option(
    "--remote",
    is_flag=True,
    help="Use the API server at LIFTLOG_API_URL instead of the local database",
)
@click.pass_context
def session(ctx: click.Context, remote: bool):
    """Run a live workout: start, log sets, pause, finish."""
    ctx.ensure_object(dict)
    ctx.obj["remote"] = remote


@session.command("start")
@click.argument("routine_id", type=int)
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in Visibility]),
    default=None,
    help="Who may follow this workout (default: the routine's visibility)",
)
@click.pass_context
@async_command
async def start(ctx: click.Context, routine_id: int, visibility: str | None):
    """Start a workout from one of your routines."""
    async with open_client(ctx, restore=False) as client:
        check(ctx, await client.start_workout(routine_id, visibility))
        mirror = client.mirror
        echo_success(f"Started workout {mirror.session_id}: {mirror.routine_name}")
        if mirror.current_exercise:
            ex = mirror.current_exercise
            click.echo(f"First up: {ex.exercise_id} ({ex.target_sets} x {ex.target_reps})")


@session.command("status")
@click.pass_context
@async_command
async def status(ctx: click.Context):
    """Show the workout in progress."""
    async with open_client(ctx) as client:
        mirror = client.mirror
        if not mirror.has_session:
            echo_info("No workout in progress.")
            return

        state = "paused" if mirror.is_paused else "active"
        click.echo()
        click.echo(click.style(f"Workout {mirror.session_id}: {mirror.routine_name}", bold=True))
        click.echo("=" * 50)
        click.echo(f"Status: {state}")
        click.echo(f"Active time: {format_duration(mirror.active_duration())}")
        click.echo()

        rows = []
        for ex in mirror.exercises:
            done = mirror.exercise_sets(ex.exercise_id)
            rows.append([
                ex.exercise_id,
                f"{len(done)}/{ex.target_sets}",
                ", ".join(
                    f"{s.reps}x{format_weight(s.weight, s.weight_unit.value)}" for s in done
                ) or "-",
            ])
        if rows:
            click.echo(format_table(["Exercise", "Sets", "Logged"], rows))


async def choose_exercise(client: WorkoutSessionClient) -> str | None:
    choices = []
    for ex in client.mirror.exercises:
        done = len(client.mirror.exercise_sets(ex.exercise_id))
        choices.append(
            questionary.Choice(
                f"{ex.exercise_id} ({done}/{ex.target_sets} sets, {ex.target_reps} reps)",
                ex.exercise_id,
            )
        )
    if not choices:
        return await questionary.text("Exercise ID:", style=custom_style).ask_async()
    return await questionary.select(
        "Which exercise?", choices=choices, style=custom_style
    ).ask_async()


@session.command("log")
@click.argument("exercise_id", required=False)
@click.option("--reps", "-r", type=int, help="Repetitions performed")
@click.option("--weight", "-w", type=float, help="Load used")
@click.option(
    "--unit", "-u",
    type=click.Choice([u.value for u in WeightUnit]),
    default=WeightUnit.KG.value,
    help="Weight unit (default: kg)",
)
@click.option("--side", type=click.Choice([s.value for s in Side]), help="Side for unilateral work")
@click.option("--label", type=click.Choice([lb.value for lb in SetLabel]), help="Set label")
@click.option("--note", help="Free-text note")
@click.option("--rpe", type=float, help="Rate of perceived exertion (1-10)")
@click.pass_context
@async_command
async def log(
    ctx: click.Context,
    exercise_id: str | None,
    reps: int | None,
    weight: float | None,
    unit: str,
    side: str | None,
    label: str | None,
    note: str | None,
    rpe: float | None,
):
    """Log a set in the workout in progress.

    Prompts for the exercise, reps and weight when they are not given.

    Examples:

        liftlog session log squat -r 5 -w 100

        liftlog session log
    """
    async with open_client(ctx) as client:
        require_session(ctx, client)

        if not exercise_id:
            exercise_id = await choose_exercise(client)
            if not exercise_id:
                fail(ctx, "No exercise chosen.")
        if reps is None:
            answer = await questionary.text("Reps:", style=custom_style).ask_async()
            reps = parse_number(answer, int, "Reps")
        if weight is None:
            answer = await questionary.text(f"Weight ({unit}):", style=custom_style).ask_async()
            weight = parse_number(answer, float, "Weight")

        result = await client.add_set(
            exercise_id, reps, weight, unit, side=side, label=label, note=note, rpe=rpe
        )
        check(ctx, result)
        logged = result.value
        echo_success(
            f"Logged {exercise_id} set {logged.exercise_set_number}: "
            f"{reps} x {format_weight(weight, unit)} (set ID {logged.db_id})"
        )


@session.command("pause")
@click.pass_context
@async_command
async def pause(ctx: click.Context):
    """Pause the workout clock."""
    async with open_client(ctx) as client:
        require_session(ctx, client)
        check(ctx, await client.pause())
        echo_success(f"Paused at {format_duration(client.mirror.active_duration())}")


@session.command("resume")
@click.pass_context
@async_command
async def resume(ctx: click.Context):
    """Resume a paused workout."""
    async with open_client(ctx) as client:
        require_session(ctx, client)
        check(ctx, await client.resume())
        echo_success(f"Resumed at {format_duration(client.mirror.active_duration())}")


@session.command("complete")
@click.option("--notes", help="Notes to keep with the workout")
@click.pass_context
@async_command
async def complete(ctx: click.Context, notes: str | None):
    """Finish the workout."""
    async with open_client(ctx) as client:
        require_session(ctx, client)
        duration = client.mirror.active_duration()
        set_count = len(client.mirror.sets)
        check(ctx, await client.complete(notes))
        echo_success(f"Workout complete: {set_count} sets in {format_duration(duration)}")


@session.command("cancel")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@async_command
async def cancel(ctx: click.Context, yes: bool):
    """Abandon the workout and discard its sets."""
    async with open_client(ctx) as client:
        require_session(ctx, client)
        count = len(client.mirror.sets)
        if not yes and not click.confirm(f"Cancel the workout and discard {count} sets?"):
            return
        check(ctx, await client.cancel())
        echo_success("Workout cancelled")


@session.command("delete-set")
@click.argument("set_id", type=int)
@click.pass_context
@async_command
async def delete_set(ctx: click.Context, set_id: int):
    """Delete a logged set by its set ID."""
    async with open_client(ctx) as client:
        require_session(ctx, client)
        local = next((s for s in client.mirror.sets if s.db_id == set_id), None)
        if local is None:
            fail(ctx, f"Set {set_id} is not part of the workout in progress.")
        check(ctx, await client.remove_set(local.local_id))
        echo_success(f"Deleted set {set_id}")
