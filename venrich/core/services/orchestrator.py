"""
Enrichment orchestrator.

Runs one bulk request through the fixed stage sequence::

    resolve provider/extractors -> partition -> fetch (per batch)
        -> extract -> validate -> send -> audit (per instrument)

Fetch failures become batch-level PROVIDER_UNAVAILABLE outcomes; every later
stage only affects its own instrument.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from time import perf_counter
from typing import Any, Literal

from loguru import logger

from venrich.core.cache import CacheStrategy
from venrich.core.config import PipelineConfig
from venrich.core.exceptions import AuditError, DispatchError, InvalidRequestError, RecordValidationError, UpstreamError
from venrich.core.extraction import ExtractionEngine, ExtractorRegistry
from venrich.core.logging import log_context
from venrich.core.models import (
    Batch,
    BulkRequest,
    BulkResult,
    DispatchOutcome,
    InstrumentIdentifier,
    ProductCategory,
    RawResponse,
)
from venrich.core.monitoring import MetricsCollector
from venrich.core.patterns import CircuitBreakerRegistry
from venrich.core.providers import ProviderRegistry, ResilientFetchClient
from venrich.core.services.audit import AuditSink
from venrich.core.services.dispatcher import DownstreamDispatcher
from venrich.core.services.partitioner import BatchPartitioner
from venrich.core.services.validation import ValidationGate

OutcomeOrder = Literal["request", "arrival"]
IdentifierInput = InstrumentIdentifier | Mapping[str, Any] | tuple[str, str]


class EnrichmentOrchestrator:
    """Drives bulk enrichment requests through the pipeline.

    Collaborators are injected; the stage sequence itself is fixed here.
    Batches run concurrently up to ``max_in_flight_batches`` and instruments
    within a fetched batch up to ``per_batch_concurrency``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        providers: ProviderRegistry,
        extractors: ExtractorRegistry,
        dispatcher: DownstreamDispatcher,
        audit: AuditSink,
        *,
        validation: ValidationGate | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        cache: CacheStrategy | None = None,
        metrics: MetricsCollector | None = None,
        partitioner: BatchPartitioner | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.providers = providers
        self.extractors = extractors
        self.dispatcher = dispatcher
        self.audit = audit
        self.validation = validation or ValidationGate(extractors.categories())
        self.breakers = breakers or CircuitBreakerRegistry()
        self.cache = cache
        self.metrics = metrics
        self.partitioner = partitioner or BatchPartitioner()
        self.engine = ExtractionEngine(extractors, metrics=metrics)
        self._sleep = sleep

    async def process(
        self,
        source_id: str,
        product_category: ProductCategory | str,
        identifiers: Iterable[IdentifierInput],
        *,
        cancel_event: asyncio.Event | None = None,
        order: OutcomeOrder = "request",
        request_id: str | None = None,
    ) -> BulkResult:
        """
        Enrich every identifier and return one outcome per instrument.

        Args:
            source_id: Registered upstream source
            product_category: Category selecting the extractor set
            identifiers: (ISIN, FIGI) pairs, unique within the request
            cancel_event: When set, no new batch or instrument starts; outcomes
                produced so far are returned and the rest listed as not started
            order: ``"request"`` to return outcomes in input order, ``"arrival"``
                for completion order
            request_id: Optional id, used as the logging trace id

        Raises:
            UnknownSourceError: ``source_id`` is not registered
            UnknownCategoryError: no extractor set for the category
            InvalidRequestError: malformed or duplicate identifiers
        """
        if order not in ("request", "arrival"):
            raise InvalidRequestError(f"order must be 'request' or 'arrival', got {order!r}")

        provider = self.providers.resolve(source_id)
        category = ProductCategory.parse(product_category)
        self.extractors.extractors_for(category)
        request = BulkRequest.create(source_id, category, identifiers, request_id=request_id)

        start = perf_counter()
        with log_context(trace_id=request.request_id, source=source_id, category=category.value):
            source_config = self.config.source(source_id)
            batches = self.partitioner.split(request, source_config.batch_size)
            client = ResilientFetchClient(
                source_id,
                provider,
                source_config,
                self.breakers,
                self.cache,
                metrics=self.metrics,
                sleep=self._sleep,
            )
            logger.info(
                "Processing bulk request",
                instruments=len(request.identifiers),
                batches=len(batches),
                provider=provider.name,
            )

            arrival: list[DispatchOutcome] = []
            batch_slots = asyncio.Semaphore(self.config.max_in_flight_batches)

            async def run_batch(batch: Batch) -> None:
                async with batch_slots:
                    if _is_set(cancel_event):
                        return
                    await self._process_batch(client, batch, cancel_event, arrival)

            await asyncio.gather(*(run_batch(batch) for batch in batches))

            result = self._assemble(request, arrival, cancel_event, order, start)
            logger.info(
                "Bulk request finished",
                counts={status.value: count for status, count in result.counts().items()},
                cancelled=result.cancelled,
                not_started=len(result.not_started),
                duration_ms=round(result.duration_ms, 1),
            )
            return result

    async def _process_batch(
        self,
        client: ResilientFetchClient,
        batch: Batch,
        cancel_event: asyncio.Event | None,
        arrival: list[DispatchOutcome],
    ) -> None:
        try:
            raw = await client.fetch(batch)
        except UpstreamError as exc:
            logger.warning(
                "Batch fetch failed",
                batch=batch.index,
                size=len(batch),
                error_code=exc.error_code.value,
                reason=exc.message,
            )
            self._fail_batch(batch, exc.message, arrival)
            return
        except Exception as exc:
            logger.opt(exception=exc).error("Provider raised unexpectedly", batch=batch.index)
            self._fail_batch(batch, f"{type(exc).__name__}: {exc}", arrival)
            return

        instrument_slots = asyncio.Semaphore(self.config.per_batch_concurrency)

        async def run_instrument(identifier: InstrumentIdentifier) -> None:
            async with instrument_slots:
                if _is_set(cancel_event):
                    return
                outcome = await self._process_instrument(raw, identifier, batch.product_category)
                self._record(outcome, batch, arrival)

        await asyncio.gather(*(run_instrument(identifier) for identifier in batch.identifiers))

    async def _process_instrument(
        self,
        raw: RawResponse,
        identifier: InstrumentIdentifier,
        category: ProductCategory,
    ) -> DispatchOutcome:
        record = self.engine.extract(raw, identifier, category)

        try:
            self.validation.validate(record)
        except RecordValidationError as exc:
            logger.info("Record rejected", isin=identifier.isin, violations=list(exc.violations))
            return DispatchOutcome.validation_rejected(identifier, exc.message, record)

        try:
            ack = await self.dispatcher.send(record)
        except DispatchError as exc:
            logger.warning("Dispatch failed", isin=identifier.isin, error_code=exc.error_code.value, reason=exc.message)
            return DispatchOutcome.dispatch_failed(identifier, exc.message, record)
        except Exception as exc:
            logger.opt(exception=exc).error("Dispatcher raised unexpectedly", isin=identifier.isin)
            return DispatchOutcome.dispatch_failed(identifier, f"{type(exc).__name__}: {exc}", record)

        audit_warning = None
        try:
            await self.audit.record(record, ack)
        except AuditError as exc:
            audit_warning = exc.message
        except Exception as exc:
            logger.opt(exception=exc).error("Audit sink raised unexpectedly", isin=identifier.isin)
            audit_warning = f"{type(exc).__name__}: {exc}"
        if audit_warning is not None:
            logger.warning("Delivered without audit entry", isin=identifier.isin, reason=audit_warning)
            if self.metrics is not None:
                self.metrics.record_audit_degraded()

        return DispatchOutcome.delivered(identifier, record, ack, audit_warning=audit_warning)

    def _fail_batch(self, batch: Batch, reason: str, arrival: list[DispatchOutcome]) -> None:
        for identifier in batch.identifiers:
            self._record(DispatchOutcome.provider_unavailable(identifier, reason), batch, arrival)

    def _record(self, outcome: DispatchOutcome, batch: Batch, arrival: list[DispatchOutcome]) -> None:
        arrival.append(outcome)
        if self.metrics is not None:
            self.metrics.record_outcome(batch.source_id, batch.product_category.value, outcome.status.value)

    @staticmethod
    def _assemble(
        request: BulkRequest,
        arrival: list[DispatchOutcome],
        cancel_event: asyncio.Event | None,
        order: OutcomeOrder,
        start: float,
    ) -> BulkResult:
        produced = {outcome.identifier for outcome in arrival}
        if order == "request":
            by_identifier = {outcome.identifier: outcome for outcome in arrival}
            outcomes = tuple(by_identifier[item] for item in request.identifiers if item in by_identifier)
        else:
            outcomes = tuple(arrival)
        return BulkResult(
            request_id=request.request_id,
            source_id=request.source_id,
            product_category=request.product_category.value,
            outcomes=outcomes,
            cancelled=_is_set(cancel_event),
            not_started=tuple(item for item in request.identifiers if item not in produced),
            duration_ms=(perf_counter() - start) * 1000,
        )

    async def aclose(self) -> None:
        """Close providers, dispatcher and audit sink."""
        await self.providers.close_all()
        await self.dispatcher.close()
        await self.audit.close()


def _is_set(event: asyncio.Event | None) -> bool:
    return event is not None and event.is_set()


__all__ = ["EnrichmentOrchestrator", "OutcomeOrder"]
