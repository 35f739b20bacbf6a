"""Initialize project command."""

import click

from ..config import settings
from ..db import get_db_path, init_db
from .base import async_command, echo_info, echo_success


@click.command()
@async_command
async def init():
    """Initialize the liftlog data directory and database.

    Safe to run again; existing data is kept.
    """
    data_dir = settings.data_dir
    echo_info(f"Initializing liftlog in {data_dir}")

    db_path = get_db_path(data_dir)
    await init_db(db_path)
    echo_success(f"Database ready at {db_path}")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Create a routine:")
    click.echo("     liftlog --user alice routines create")
    click.echo()
    click.echo("  2. Train:")
    click.echo("     liftlog --user alice session start ROUTINE_ID")
    click.echo("     liftlog --user alice session log")
