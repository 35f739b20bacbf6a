"""Shared CLI utilities."""

import asyncio
from datetime import timedelta
from functools import wraps

import click
from questionary import Style

from ..config import settings
from ..db import get_db_path
from ..errors import LiftLogError

# Style for interactive prompts
custom_style = Style(
    [
        ("qmark", "fg:#673ab7 bold"),
        ("question", "bold"),
        ("answer", "fg:#f44336 bold"),
        ("pointer", "fg:#673ab7 bold"),
        ("highlighted", "fg:#673ab7 bold"),
        ("selected", "fg:#cc5454"),
        ("instruction", ""),
        ("text", ""),
    ]
)


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_db_path()
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'liftlog init' first."
        )
        ctx.exit(1)


def get_user(ctx: click.Context) -> str:
    """The acting user from --user or LIFTLOG_USER."""
    user = (ctx.find_root().obj or {}).get("user") or settings.user
    if not user:
        echo_error("No user set. Pass --user or set LIFTLOG_USER.")
        ctx.exit(1)
    return user


def fail(ctx: click.Context, error: LiftLogError | ValueError | str) -> None:
    """Report a failed operation and exit with status 1."""
    echo_error(str(error))
    ctx.exit(1)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message)


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def format_duration(duration: timedelta) -> str:
    """Render a duration as H:MM:SS."""
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def format_weight(weight: float, unit: str) -> str:
    if weight == int(weight):
        return f"{int(weight)} {unit}"
    return f"{weight:g} {unit}"


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format data as a simple table."""
    if not rows:
        return ""

    # Calculate column widths
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = [
        "".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers)),
        "".join("-" * w + " " * padding for w in widths),
    ]
    for row in rows:
        lines.append("".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row)))

    return "\n".join(lines)
