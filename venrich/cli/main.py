"""Main entry point for the venrich command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from venrich.core.logging import configure_logging

from .constants import LOG_LEVELS
from .enrich import register as register_enrich_command
from .formatters import create_formatter


def create_app() -> typer.Typer:
    """Create a Typer application instance for venrich."""

    app = typer.Typer(add_completion=False, help="venrich command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str = typer.Option(
            "WARNING",
            "--log-level",
            help="Log level for the JSON logs written to stderr.",
            show_default=True,
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        level = log_level.strip().upper()
        if level not in LOG_LEVELS:
            raise typer.BadParameter(
                f"Unsupported log level '{log_level}'. Allowed values: {', '.join(LOG_LEVELS)}",
                param_hint="--log-level",
            )

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": level,
                "no_color": no_color,
            }
        )
        configure_logging(level)

    register_enrich_command(app)
    return app


app = create_app()
