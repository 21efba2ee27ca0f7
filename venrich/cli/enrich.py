"""The ``enrich`` command: run one bulk request through the pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import typer

from venrich.core.config import ConfigManager, PipelineConfig
from venrich.core.exceptions import (
    AuditError,
    ConfigurationError,
    InvalidRequestError,
    UnknownCategoryError,
    UnknownSourceError,
    VEnrichError,
)
from venrich.core.models import BulkResult, InstrumentIdentifier
from venrich.core.services import EnrichmentOrchestrator, build_orchestrator

from .constants import PARTIAL_EXIT_CODE, SUCCESS_EXIT_CODE, VALIDATION_EXIT_CODE
from .utils import emit_error, prepare_output, read_identifiers

DEFAULT_COLUMNS = ["isin", "figi", "status", "reason", "audit_warning", "ack_reference"]


def register(app: typer.Typer) -> None:
    """Register the enrich command on the provided application."""

    app.command("enrich")(enrich_command)


def load_pipeline_config(
    config_path: Path | None,
    *,
    source: str,
    fixtures: Path | None,
    downstream_url: str | None,
    audit_db: str | None,
) -> PipelineConfig:
    """Load the configuration snapshot and apply command-line overrides.

    Raises:
        ConfigurationError: the file or an override is invalid
    """
    config = ConfigManager(config_path).get_config()
    if fixtures is not None:
        source_config = replace(config.source(source), provider="static", options={"fixtures": str(fixtures)})
        config = replace(config, sources={**config.sources, source: source_config})
    if downstream_url:
        config = replace(config, downstream=replace(config.downstream, endpoint=downstream_url))
    if audit_db:
        config = replace(config, audit=replace(config.audit, database=audit_db))
    return config


def get_orchestrator(config: PipelineConfig) -> EnrichmentOrchestrator:
    """Factory hook for obtaining an orchestrator instance."""

    return build_orchestrator(config)


async def _run(
    orchestrator: EnrichmentOrchestrator,
    source: str,
    category: str,
    identifiers: list[InstrumentIdentifier],
    order: str,
) -> BulkResult:
    try:
        return await orchestrator.process(source, category, identifiers, order=order)
    finally:
        await orchestrator.aclose()


def enrich_command(
    ctx: typer.Context,
    source: str = typer.Option(..., "--source", "-s", help="Registered upstream source id."),
    category: str = typer.Option(..., "--category", "-c", help="Product category (fixed_income, equity, hedge_fund)."),
    identifiers_from: Path = typer.Option(..., "--identifiers-from", help="CSV file of isin,figi rows."),
    fixtures: Path | None = typer.Option(
        None,
        "--fixtures",
        help="JSON payloads keyed by ISIN or FIGI; serves the source from a static provider.",
    ),
    config_path: Path | None = typer.Option(None, "--config", help="TOML configuration file."),
    downstream_url: str | None = typer.Option(
        None,
        "--downstream-url",
        help="Downstream endpoint; records are acknowledged locally (dry run) when omitted.",
    ),
    audit_db: str | None = typer.Option(None, "--audit-db", help="DuckDB file for the audit trail."),
    order: str = typer.Option("request", "--order", help="Outcome order: request or arrival."),
) -> None:
    """Enrich instruments with analytics and deliver them downstream."""

    try:
        identifiers = read_identifiers(identifiers_from)
    except (OSError, ValueError) as exc:
        emit_error(str(exc), "IDENTIFIERS_FILE_ERROR")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

    if not identifiers:
        emit_error("No identifiers supplied for enrich command.", "IDENTIFIERS_MISSING")
        raise typer.Exit(code=VALIDATION_EXIT_CODE)

    try:
        config = load_pipeline_config(
            config_path,
            source=source,
            fixtures=fixtures,
            downstream_url=downstream_url,
            audit_db=audit_db,
        )
        orchestrator = get_orchestrator(config)
    except (ConfigurationError, AuditError) as error:
        emit_error(error.message, error.error_code.value, details=error.details)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error

    try:
        result = asyncio.run(_run(orchestrator, source, category, identifiers, order))
    except (UnknownSourceError, UnknownCategoryError, InvalidRequestError, ConfigurationError) as error:
        emit_error(error.message, error.error_code.value, details=error.details)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
    except VEnrichError as error:
        emit_error(error.message, error.error_code.value, details=error.details)
        raise typer.Exit(code=PARTIAL_EXIT_CODE) from error

    rows = result_rows(result)
    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        formatter.render(rows, stream=stream, columns=DEFAULT_COLUMNS)
    finally:
        stack.close()

    raise typer.Exit(code=SUCCESS_EXIT_CODE if result.all_delivered else PARTIAL_EXIT_CODE)


def result_rows(result: BulkResult) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = [outcome.to_row() for outcome in result.outcomes]
    for identifier in result.not_started:
        rows.append(
            {
                "isin": identifier.isin,
                "figi": identifier.figi,
                "status": "not_started",
                "reason": "cancelled",
                "audit_warning": None,
                "ack_reference": None,
            }
        )
    return rows


__all__ = ["register", "enrich_command", "get_orchestrator", "load_pipeline_config", "result_rows"]
