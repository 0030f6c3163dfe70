"""
CLI Application.

Typer application tying the command groups together.

Usage:
    python cli.py --help
    python cli.py models get users
    python cli.py --debug models update users -s patch.yaml
"""

import typer
from rich.console import Console

from hastily.cli.commands import auth_app, models_app, system_app
from hastily.core.config import validate_project_root

app = typer.Typer(
    name="hastily",
    help="hastily - generic command-line client for REST backends.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(models_app, name="models")
app.add_typer(auth_app, name="auth")
app.add_typer(system_app, name="system")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
) -> None:
    """
    hastily - generic command-line client for REST backends.

    Fetch, filter, create, update and delete backend objects and render
    the results as tables.
    """
    validate_project_root()

    from hastily.core.logging import setup_logging

    if debug:
        setup_logging(level="DEBUG", format_type="console")
        console.print("[dim]Debug mode enabled[/dim]")
    elif verbose:
        setup_logging(level="INFO", format_type="console")
    else:
        setup_logging()
