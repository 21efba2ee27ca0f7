"""Output formatters for CLI commands."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.markup import escape
from rich.table import Table

_STATUS_STYLES = {
    "delivered": "green",
    "validation_rejected": "yellow",
    "dispatch_failed": "red",
    "provider_unavailable": "red",
    "not_started": "dim",
}


class OutputFormatter:
    """Protocol-like base class for CLI output formatters."""

    name: str

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Render outcome rows as a Rich table, status cells coloured."""

    name: str = "table"
    no_color: bool = False

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)
        resolved = list(columns) if columns else (list(rows[0].keys()) if rows else [])

        table = Table(box=SIMPLE, show_lines=False)
        for column in resolved:
            table.add_column(column, header_style="" if self.no_color else "bold")
        for row in rows:
            table.add_row(*(self._format_cell(column, row.get(column)) for column in resolved))
        console.print(table)
        if not rows:
            console.print("No instruments processed.")

    def _format_cell(self, column: str, value: object) -> str:
        if value is None:
            return "-"
        text = escape(str(value))
        style = _STATUS_STYLES.get(text) if column == "status" and not self.no_color else None
        return f"[{style}]{text}[/{style}]" if style else text


@dataclass(slots=True)
class JSONLFormatter(OutputFormatter):
    """Render rows as JSON Lines."""

    name: str = "jsonl"

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        for row in rows:
            data = {column: row.get(column) for column in columns} if columns else dict(row)
            json.dump(data, stream, ensure_ascii=False, default=str)
            stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    raise ValueError(f"Unsupported format '{name}'. Available formats: table, jsonl.")


__all__ = ["OutputFormatter", "TableFormatter", "JSONLFormatter", "create_formatter"]
