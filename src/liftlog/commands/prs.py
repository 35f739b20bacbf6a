"""Personal record command."""

import click

from ..errors import LiftLogError
from ..services import RoutineService
from .base import async_command, echo_info, ensure_initialized, fail, format_table, format_weight, get_user


@click.command()
@click.argument("exercise_id")
@click.pass_context
@async_command
async def prs(ctx: click.Context, exercise_id: str):
    """Show your all-time records for an exercise."""
    ensure_initialized(ctx)
    user = get_user(ctx)

    try:
        records = await RoutineService().get_exercise_prs(user, exercise_id)
    except LiftLogError as e:
        fail(ctx, e)

    if records is None:
        echo_info(f"No sets logged for {exercise_id} yet.")
        return

    rows = []
    for title, record in (
        ("Max weight", records.max_weight),
        ("Max reps", records.max_reps),
        ("Max volume", records.max_volume),
    ):
        s = record.set
        rows.append([
            title,
            f"{record.value:g}",
            f"{s.reps} x {format_weight(s.weight, s.weight_unit.value)}" if s else "-",
            s.completed_at.strftime("%Y-%m-%d") if s else "-",
        ])

    click.echo()
    click.echo(click.style(f"Personal records: {exercise_id}", bold=True))
    click.echo(format_table(["Record", "Value", "Set", "Date"], rows))
    click.echo()
    click.echo(f"Total sets logged: {records.total_sets}")
