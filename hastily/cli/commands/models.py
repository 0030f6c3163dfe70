"""
Model Commands.

Fetch, create, update and delete objects of any backend model.

Filters are given as repeated ``--filter field=value`` options. Values are
read as YAML scalars, so ``id=3`` matches the integer 3 and
``active=true`` matches the boolean True.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console

from hastily.api.export import ExportModel, TableType
from hastily.api.generic import Generic, render_value
from hastily.api.model import Meta, Resource, load_yaml
from hastily.api.orchestrator import ModelAPI
from hastily.api.status import NO_CHANGE, ResultList
from hastily.cli.client import get_model_api
from hastily.core.config import get_app_config
from hastily.core.exceptions import ApplicationError
from hastily.core.logging import get_logger, log_with_source

app = typer.Typer(help="Backend model commands")
console = Console()
logger = get_logger(__name__)

FilterOption = typer.Option(
    None, "--filter", "-f", help="Filter as field=value; repeat for several fields",
)
FormatOption = typer.Option(
    None, "--format", "-t", help="Table type: csv, markdown, preview, basic, vertical",
)
OutputOption = typer.Option(None, "--output", "-o", help="Write the table to a file (implies --wide)")
WideOption = typer.Option(False, "--wide", "-w", help="Do not truncate columns")


def parse_filters(values: list[str] | None) -> dict[str, Any]:
    """Turn ``field=value`` strings into a filter mapping."""
    result: dict[str, Any] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"Filter '{item}' must look like field=value")
        try:
            result[name] = load_yaml(raw) if raw.strip() else raw
        except yaml.YAMLError:
            result[name] = raw
    return result


def _table_type(name: str | None) -> TableType:
    configured = name or get_app_config().application.export.table_type
    try:
        return TableType.from_name(configured)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _export(
    api: ModelAPI,
    data: list[Resource],
    extra_fields: dict[str, Generic] | None,
    table_format: str | None,
    output: Path | None,
    wide: bool,
) -> None:
    api.export(ExportModel(
        data=data,
        extra_fields=extra_fields,
        table_type=_table_type(table_format),
        is_wide=wide,
        output_file=output,
        max_column_width=get_app_config().application.export.max_column_width,
    ))
    if output:
        console.print(f"[green]✓ Written to {output}[/green]")


def _fields_as_columns(resources: list[Resource]) -> dict[str, Generic]:
    """Every non-identity field of each resource as an extra column."""
    columns = {}
    for resource in resources:
        fields = resource.field_map()
        fields.pop(resource.IDENTITY_FIELD, None)
        columns[resource.key] = Generic(
            keys=list(fields), values=[render_value(v) for v in fields.values()],
        )
    return columns


def _report(results: ResultList, action: str) -> None:
    color = "green" if results.successes() == results.size() else "yellow"
    console.print(f"[{color}]{results.successes()}/{results.size()} {action}[/{color}]")


def _fail(error: Exception) -> None:
    log_with_source(logger, "cli", "error", "Command failed", error=str(error))
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


def _has_errors(results: ResultList) -> bool:
    """True when an object failed to send or could not be merged."""
    return any(
        outcome.state == "failed" or (outcome.skipped and outcome.message != NO_CHANGE)
        for _, outcome in results.items()
    )


@app.command()
def get(
    model: str = typer.Argument(..., help="Backend model name, e.g. users"),
    filters: Optional[list[str]] = FilterOption,
    table_format: Optional[str] = FormatOption,
    output: Optional[Path] = OutputOption,
    wide: bool = WideOption,
) -> None:
    """
    Fetch objects of a model, optionally filtered.

    Examples:
        cli.py models get users
        cli.py models get users -f active=true -t markdown
    """
    asyncio.run(_get(model, parse_filters(filters), table_format, output, wide))


async def _get(
    model: str,
    filter: dict[str, Any],
    table_format: str | None,
    output: Path | None,
    wide: bool,
) -> None:
    """Async implementation of get command."""
    try:
        api = get_model_api(model)
    except ApplicationError as e:
        _fail(e)

    try:
        objects = await api.get_filtered(filter)
        _export(api, objects, _fields_as_columns(objects), table_format, output, wide)
    except (ApplicationError, OSError) as e:
        _fail(e)
    finally:
        await api.close()


@app.command()
def create(
    model: str = typer.Argument(..., help="Backend model name"),
    source: Path = typer.Option(..., "--source", "-s", exists=True, dir_okay=False, help="YAML/JSON object"),
) -> None:
    """
    Create one object from a YAML or JSON file.

    Examples:
        cli.py models create users -s new_user.yaml
    """
    asyncio.run(_create(model, source))


async def _create(model: str, source: Path) -> None:
    """Async implementation of create command."""
    try:
        api = get_model_api(model)
    except ApplicationError as e:
        _fail(e)

    try:
        meta = Meta.from_file(source, api.resource_type)
        if meta.resource is None:
            raise typer.BadParameter(f"{source} does not describe a {model} object")
        await api.create(meta.resource)
        console.print(f"[green]✓ Created {model} object[/green]")
    except ApplicationError as e:
        _fail(e)
    finally:
        await api.close()


@app.command()
def delete(
    model: str = typer.Argument(..., help="Backend model name"),
    filters: Optional[list[str]] = FilterOption,
    all_objects: bool = typer.Option(False, "--all", help="Allow deleting without a filter"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    table_format: Optional[str] = FormatOption,
) -> None:
    """
    Delete every object matching the filter.

    Examples:
        cli.py models delete users -f team=legacy
        cli.py models delete sessions --all --yes
    """
    filter = parse_filters(filters)
    if not filter and not all_objects:
        raise typer.BadParameter("Refusing to delete without --filter; pass --all to delete everything")
    asyncio.run(_delete(model, filter, yes, table_format))


async def _delete(model: str, filter: dict[str, Any], yes: bool, table_format: str | None) -> None:
    """Async implementation of delete command."""
    try:
        api = get_model_api(model)
    except ApplicationError as e:
        _fail(e)

    try:
        objects = await api.get_filtered(filter)
        if not objects:
            console.print("[yellow]Nothing matches the filter.[/yellow]")
            return
        if not yes and not typer.confirm(f"Delete {len(objects)} {model} object(s)?"):
            raise typer.Abort()

        results = await api.delete_many(objects)
        _export(api, objects, results.to_generic(), table_format, None, False)
        _report(results, "deleted")
        if results.failures():
            raise typer.Exit(1)
    except ApplicationError as e:
        _fail(e)
    finally:
        await api.close()


@app.command()
def update(
    model: str = typer.Argument(..., help="Backend model name"),
    source: Path = typer.Option(..., "--source", "-s", exists=True, dir_okay=False, help="Partial YAML/JSON update"),
    filters: Optional[list[str]] = FilterOption,
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Merge locally, send nothing"),
    table_format: Optional[str] = FormatOption,
    output: Optional[Path] = OutputOption,
) -> None:
    """
    Merge a partial update into every matching object and send the changes.

    Objects the update does not change are skipped.

    Examples:
        cli.py models update users -s patch.yaml -f team=core
        cli.py models update users -s patch.yaml --dry-run
    """
    asyncio.run(_update(model, source, parse_filters(filters), dry_run, table_format, output))


async def _update(
    model: str,
    source: Path,
    filter: dict[str, Any],
    dry_run: bool,
    table_format: str | None,
    output: Path | None,
) -> None:
    """Async implementation of update command."""
    try:
        api = get_model_api(model)
    except ApplicationError as e:
        _fail(e)

    try:
        meta = Meta.from_file(source, api.resource_type)
        objects = await api.get_filtered(filter)
        if not objects:
            console.print("[yellow]Nothing matches the filter.[/yellow]")
            return

        updated, merged = api.list_update(objects, meta)
        if dry_run:
            _export(api, updated, merged.to_generic(), table_format, output, False)
            _report(merged, "would change")
            return

        results = await api.update_many(updated, merged)
        _export(api, updated, results.to_generic(), table_format, output, False)
        _report(results, "updated")
        if _has_errors(results):
            raise typer.Exit(1)
    except (ApplicationError, OSError) as e:
        _fail(e)
    finally:
        await api.close()
