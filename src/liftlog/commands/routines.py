"""Routine management commands."""

import re

import click
import questionary

from ..errors import LiftLogError
from ..models.routine import RoutineExercise, Visibility
from ..services import RoutineService
from .base import (
    async_command,
    custom_style,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    fail,
    format_table,
    format_weight,
    get_user,
)

# squat, squat:5x5, squat:3x8:unilateral
EXERCISE_SPEC = re.compile(r"^(?P<id>[^:\s]+)(?::(?P<sets>\d+)x(?P<reps>\d+))?(?P<uni>:unilateral)?$")


def parse_exercise_spec(spec: str, order: int) -> RoutineExercise:
    """Parse ``exercise_id[:SETSxREPS][:unilateral]`` into a routine slot."""
    match = EXERCISE_SPEC.match(spec.strip())
    if not match:
        raise click.BadParameter(
            f"'{spec}' is not EXERCISE_ID[:SETSxREPS][:unilateral]", param_hint="--exercise"
        )
    exercise = RoutineExercise(exercise_id=match["id"], order=order)
    if match["sets"]:
        exercise.target_sets = int(match["sets"])
        exercise.target_reps = int(match["reps"])
    if match["uni"]:
        exercise.is_unilateral = True
    return exercise


async def prompt_exercises() -> list[RoutineExercise]:
    """Ask for exercises one at a time until an empty answer."""
    exercises = []
    while True:
        exercise_id = await questionary.text(
            f"Exercise {len(exercises) + 1} ID (blank to finish):",
            style=custom_style,
        ).ask_async()
        if not exercise_id:
            break

        target_sets = await questionary.text(
            "Target sets:", default="3", style=custom_style
        ).ask_async()
        target_reps = await questionary.text(
            "Target reps:", default="10", style=custom_style
        ).ask_async()
        unilateral = await questionary.confirm(
            "One side at a time?", default=False, style=custom_style
        ).ask_async()

        try:
            sets, reps = int(target_sets), int(target_reps)
        except (ValueError, TypeError):
            echo_warning("Sets and reps must be whole numbers; using 3 x 10.")
            sets, reps = 3, 10

        exercises.append(
            RoutineExercise(
                exercise_id=exercise_id.strip(),
                order=len(exercises),
                target_sets=sets,
                target_reps=reps,
                is_unilateral=unilateral or None,
            )
        )
    return exercises


@click.group()
def routines():
    """Create and review workout routines."""
    pass


@routines.command("list")
@click.pass_context
@async_command
async def list_routines(ctx: click.Context):
    """List your routines."""
    ensure_initialized(ctx)
    user = get_user(ctx)

    try:
        items = await RoutineService().list_routines(user)
    except LiftLogError as e:
        fail(ctx, e)

    if not items:
        echo_info("No routines yet. Create one with 'liftlog routines create'.")
        return

    rows = [
        [
            str(r.id),
            r.name[:30],
            str(len(r.exercises)),
            r.visibility.value,
            str(r.times_performed),
            r.last_performed_at.strftime("%Y-%m-%d") if r.last_performed_at else "-",
        ]
        for r in items
    ]
    click.echo()
    click.echo(format_table(["ID", "Name", "Exercises", "Visibility", "Done", "Last"], rows))


@routines.command("show")
@click.argument("routine_id", type=int)
@click.pass_context
@async_command
async def show(ctx: click.Context, routine_id: int):
    """Show a routine and how each exercise has gone recently."""
    ensure_initialized(ctx)
    user = get_user(ctx)

    try:
        result = await RoutineService().get_with_history(user, routine_id)
    except LiftLogError as e:
        fail(ctx, e)

    if result is None:
        fail(ctx, f"Routine {routine_id} not found.")

    routine = result.routine
    click.echo()
    click.echo(click.style(routine.name, bold=True))
    click.echo("=" * 50)
    if routine.description:
        click.echo(routine.description)
    click.echo(f"Visibility: {routine.visibility.value}")
    click.echo(f"Performed: {routine.times_performed} times")
    click.echo()

    rows = []
    for ex in routine.exercises:
        summary = result.exercise_history.get(ex.exercise_id)
        unit = summary.sets[-1].weight_unit.value if summary and summary.sets else ""
        rows.append([
            str(ex.order + 1),
            ex.exercise_id + (" (uni)" if ex.is_unilateral else ""),
            f"{ex.target_sets} x {ex.target_reps}",
            format_weight(summary.best_weight, unit).strip() if summary and summary.sets else "-",
            str(summary.best_reps) if summary and summary.sets else "-",
            summary.last_performed.strftime("%Y-%m-%d")
            if summary and summary.last_performed else "-",
        ])
    if rows:
        click.echo(format_table(["#", "Exercise", "Target", "Best", "Reps", "Last"], rows))
    else:
        echo_info("This routine has no exercises.")


@routines.command("create")
@click.option("--name", "-n", help="Routine name")
@click.option("--description", "-d", help="Optional description")
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in Visibility]),
    default=Visibility.PRIVATE.value,
    help="Who may see the routine and its live sessions",
)
@click.option(
    "--exercise",
    "-e",
    "exercise_specs",
    multiple=True,
    help="EXERCISE_ID[:SETSxREPS][:unilateral], repeatable, in order",
)
@click.pass_context
@async_command
async def create(
    ctx: click.Context,
    name: str | None,
    description: str | None,
    visibility: str,
    exercise_specs: tuple[str, ...],
):
    """Create a routine.

    Prompts for anything not given as an option.

    Examples:

        liftlog routines create -n "Push" -e bench:5x5 -e ohp:3x8 -e lateral-raise:3x12:unilateral
    """
    ensure_initialized(ctx)
    user = get_user(ctx)

    if not name:
        name = await questionary.text("Routine name:", style=custom_style).ask_async()
        if not name:
            fail(ctx, "A routine needs a name.")

    if exercise_specs:
        exercises = [parse_exercise_spec(spec, i) for i, spec in enumerate(exercise_specs)]
    else:
        exercises = await prompt_exercises()

    try:
        routine = await RoutineService().create_routine(
            user, name, exercises, description=description, visibility=visibility
        )
    except (LiftLogError, ValueError) as e:
        fail(ctx, e)

    echo_success(f"Created routine {routine.id}: {routine.name} ({len(exercises)} exercises)")


@routines.command("delete")
@click.argument("routine_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@async_command
async def delete(ctx: click.Context, routine_id: int, yes: bool):
    """Delete a routine together with its workouts and sets."""
    ensure_initialized(ctx)
    user = get_user(ctx)

    if not yes and not click.confirm(
        f"Delete routine {routine_id} and all of its workout history?"
    ):
        return

    try:
        await RoutineService().delete_routine(user, routine_id)
    except LiftLogError as e:
        fail(ctx, e)

    echo_success(f"Deleted routine {routine_id}")


@routines.command("history")
@click.argument("routine_id", type=int)
@click.argument("exercise_id")
@click.option("--limit", "-l", type=int, default=None, help="Most recent sets to include")
@click.pass_context
@async_command
async def history(ctx: click.Context, routine_id: int, exercise_id: str, limit: int | None):
    """Show past sets of one exercise in a routine, per workout."""
    ensure_initialized(ctx)
    user = get_user(ctx)

    try:
        result = await RoutineService().get_exercise_history(user, routine_id, exercise_id, limit)
    except LiftLogError as e:
        fail(ctx, e)

    if result is None:
        fail(ctx, f"Routine {routine_id} not found.")
    if not result.sessions:
        echo_info(f"No sets of {exercise_id} logged in this routine yet.")
        return

    for group in result.sessions:
        started = group.session.started_at.strftime("%Y-%m-%d %H:%M") if group.session else "?"
        click.echo()
        click.echo(click.style(started, bold=True))
        for s in group.sets:
            label = f" [{s.label.value}]" if s.label else ""
            side = f" ({s.side.value})" if s.side else ""
            click.echo(
                f"  {s.exercise_set_number}. {s.reps} x "
                f"{format_weight(s.weight, s.weight_unit.value)}{side}{label}"
            )

    click.echo()
    click.echo(f"{result.total_sets} sets across {len(result.sessions)} workouts")
