"""
Table Export.

Renders a list of resources, optionally extended with per-resource extra
columns, to the terminal or to a file.

Known inconsistency, kept on purpose: when extra columns are supplied the
header is ID plus the extra column names of the *first* resource only.
Later rows append their own extra values positionally, so resources with
a different set of extra columns end up misaligned or in unnamed columns.

Writing to a file always uses wide mode (no truncation).
"""

import csv
import dataclasses
import enum
from collections.abc import Sequence
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from hastily.api.generic import Generic
from hastily.api.model import Resource

WIDE_CONSOLE_WIDTH = 10_000


class TableType(enum.Enum):
    CSV = "csv"
    MARKDOWN = "markdown"
    PREVIEW = "preview"
    BASIC = "basic"
    VERTICAL = "vertical"

    @classmethod
    def from_name(cls, name: str) -> "TableType":
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown table type '{name}' (choose from {choices})") from None


@dataclasses.dataclass
class ExportModel:
    """What to render and where."""

    data: Sequence[Resource]
    extra_fields: dict[str, Generic] | None = None
    table_type: TableType = TableType.BASIC
    is_wide: bool = False
    output_file: str | Path | None = None
    max_column_width: int = 40


def build_rows(export: ExportModel) -> tuple[list[str], list[list[str]]]:
    """Header and row cells for an export, before any styling."""
    header = ["ID"]
    should_expand = bool(export.extra_fields)

    if export.data and should_expand:
        first = export.extra_fields.get(export.data[0].key)
        if first is not None:
            header.extend(first.keys)

    rows = []
    for resource in export.data:
        row = [resource.key]
        if should_expand:
            extra = export.extra_fields.get(resource.key)
            if extra is not None:
                row.extend(extra.values)
        rows.append(row)

    return header, rows


def _styled_table(table_type: TableType) -> Table:
    if table_type is TableType.PREVIEW:
        return Table(box=box.ROUNDED, header_style="bold bright_red", show_edge=True)
    if table_type is TableType.MARKDOWN:
        return Table(box=box.MARKDOWN, header_style="", show_edge=True)
    # basic
    return Table(
        box=None,
        header_style="bold yellow",
        show_edge=False,
        pad_edge=False,
    )


def _add_column(table: Table, name: str, export: ExportModel, **kwargs) -> None:
    if export.is_wide:
        table.add_column(name, overflow="fold", **kwargs)
    else:
        table.add_column(
            name, no_wrap=True, overflow="ellipsis", max_width=export.max_column_width, **kwargs,
        )


def _render_table(console: Console, export: ExportModel, header: list[str], rows: list[list[str]]) -> None:
    table = _styled_table(export.table_type)
    for name in header:
        _add_column(table, name, export, justify="left")
    for row in rows:
        table.add_row(*row)
    console.print(table)


def _render_vertical(console: Console, export: ExportModel, header: list[str], rows: list[list[str]]) -> None:
    for index, row in enumerate(rows):
        table = Table(box=None, show_header=False, pad_edge=False)
        _add_column(table, "field", export, style="bold yellow")
        _add_column(table, "value", export)
        for position, value in enumerate(row):
            label = header[position] if position < len(header) else ""
            table.add_row(label, value)
        if index:
            console.print()
        console.print(table)


def _render_csv(console: Console, header: list[str], rows: list[list[str]]) -> None:
    writer = csv.writer(console.file, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)


def render(console: Console, export: ExportModel) -> None:
    """Render an export onto a console."""
    header, rows = build_rows(export)

    if export.table_type is TableType.CSV:
        _render_csv(console, header, rows)
    elif export.table_type is TableType.VERTICAL:
        _render_vertical(console, export, header, rows)
    else:
        _render_table(console, export, header, rows)


def export_table(export: ExportModel, console: Console | None = None) -> None:
    """
    Pretty print an export to the console, or to ``export.output_file``.

    Raises:
        OSError: If the output file cannot be written
    """
    if export.output_file:
        export = dataclasses.replace(export, is_wide=True)
        with open(export.output_file, "w", encoding="utf-8", newline="") as handle:
            file_console = Console(
                file=handle, width=WIDE_CONSOLE_WIDTH, color_system=None, soft_wrap=False,
            )
            render(file_console, export)
        return

    render(console or Console(), export)
