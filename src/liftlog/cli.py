"""CLI entry point for liftlog."""

import logging

import click

from . import __version__
from .commands import init, prs, routines, serve, session
from .config import settings


@click.group()
@click.version_option(version=__version__, prog_name="liftlog")
@click.option("--user", "-U", envvar="LIFTLOG_USER", help="Act as this user ID")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def main(ctx: click.Context, user: str | None, verbose: bool):
    """liftlog: workout routines, live sessions and set logging.

    Example usage:

        # Initialize the database
        liftlog init

        # Build a routine and train it
        liftlog --user alice routines create -n "Legs" -e squat:5x5 -e rdl:3x8
        liftlog --user alice session start 1
        liftlog --user alice session log squat -r 5 -w 100
        liftlog --user alice session complete

        # Serve the HTTP API
        liftlog serve
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["user"] = user


# Register commands
main.add_command(init)
main.add_command(routines)
main.add_command(session)
main.add_command(prs)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
