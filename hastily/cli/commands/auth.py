"""
Authentication Commands.

Log in against the configured OAuth endpoint, verify saved credentials,
and log out.
"""

import asyncio

import typer
from rich.console import Console

from hastily.api.transport import HttpTransport
from hastily.core.config import get_app_config
from hastily.core.credentials import (
    delete_credentials,
    get_credentials,
    load_credentials,
)
from hastily.core.exceptions import ApplicationError

app = typer.Typer(help="Authentication commands")
console = Console()


@app.command()
def login(
    username: str = typer.Option(
        ..., "--username", "-u", envvar="HASTILY_USERNAME", prompt=True, help="Account name",
    ),
    password: str = typer.Option(
        ..., "--password", "-p", envvar="HASTILY_PASSWORD", prompt=True, hide_input=True,
        help="Account password",
    ),
) -> None:
    """
    Obtain an access token and save it for later commands.

    Examples:
        cli.py auth login -u alice
    """
    asyncio.run(_login(username, password))


async def _login(username: str, password: str) -> None:
    """Async implementation of login command."""
    api = get_app_config().application.api
    if not api.login:
        console.print("[red]Error: no login endpoint configured (application.yaml api.login)[/red]")
        raise typer.Exit(1)

    try:
        credentials = await get_credentials(api.login, username, password)
        path = credentials.save()
    except (ApplicationError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Logged in as {username}[/green]")
    console.print(f"[dim]Credentials saved to {path}[/dim]")

    if api.verify:
        await _verify()


@app.command()
def verify() -> None:
    """
    Check that saved credentials are accepted by the backend.

    Examples:
        cli.py auth verify
    """
    asyncio.run(_verify())


async def _verify() -> None:
    """Async implementation of verify command."""
    api = get_app_config().application.api
    if not api.verify:
        console.print("[red]Error: no verify endpoint configured (application.yaml api.verify)[/red]")
        raise typer.Exit(1)

    try:
        credentials = load_credentials()
    except FileNotFoundError:
        console.print("[red]✗ Not logged in[/red]")
        raise typer.Exit(1)
    except ApplicationError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    transport = HttpTransport(api.endpoint, "", token=credentials.access_token, timeout=api.timeout)
    try:
        response = await transport.check_connection(api.verify)
    finally:
        await transport.close()

    if not response.success:
        console.print(f"[red]✗ {response.message}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Credentials are valid[/green]")


@app.command()
def logout() -> None:
    """
    Remove saved credentials.

    Examples:
        cli.py auth logout
    """
    if delete_credentials():
        console.print("[green]✓ Logged out[/green]")
    else:
        console.print("[dim]No saved credentials[/dim]")
