"""Extraction engine: runs a category's extractor chain into one frozen record."""

from __future__ import annotations

from loguru import logger

from venrich.core.exceptions import ExtractionError
from venrich.core.extraction.base import AttributeExtractor
from venrich.core.extraction.registry import ExtractorRegistry
from venrich.core.models import (
    AttributeValue,
    InstrumentIdentifier,
    ProductCategory,
    RawResponse,
    UnifiedRecord,
    UnifiedRecordBuilder,
)
from venrich.core.monitoring import MetricsCollector


class ExtractionEngine:
    """Runs every extractor of a category against the same raw response.

    The chain never short-circuits: a failing extractor yields a FAILED value
    tagged with its name and the engine moves on. Synchronous and CPU-bound.
    """

    def __init__(self, registry: ExtractorRegistry, *, metrics: MetricsCollector | None = None) -> None:
        self.registry = registry
        self.metrics = metrics

    def extract(
        self,
        raw: RawResponse,
        identifier: InstrumentIdentifier,
        category: ProductCategory | str,
    ) -> UnifiedRecord:
        resolved = ProductCategory.parse(category)
        builder = UnifiedRecordBuilder(identifier, resolved, raw.source_id, raw.fetched_at)
        for extractor in self.registry.extractors_for(resolved):
            value = self._run(extractor, raw, builder)
            if not value.is_produced and self.metrics is not None:
                self.metrics.record_extractor_failure(resolved.value, extractor.name)
            builder.add(value)
        return builder.freeze()

    def _run(
        self,
        extractor: AttributeExtractor,
        raw: RawResponse,
        builder: UnifiedRecordBuilder,
    ) -> AttributeValue:
        def failed(reason: str) -> AttributeValue:
            return AttributeValue.failed(extractor.attribute, extractor.name, reason, required=extractor.required)

        try:
            value = extractor.extract(raw, builder)
        except ExtractionError as exc:
            logger.debug(
                "Extractor failed",
                extractor=extractor.name,
                isin=builder.identifier.isin,
                reason=exc.message,
            )
            return failed(exc.message)
        except Exception as exc:
            logger.opt(exception=exc).warning(
                "Extractor raised unexpectedly",
                extractor=extractor.name,
                isin=builder.identifier.isin,
            )
            return failed(f"{type(exc).__name__}: {exc}")

        if not isinstance(value, AttributeValue):
            return failed(f"extractor returned {type(value).__name__}, expected AttributeValue")
        if value.name != extractor.attribute or value.provenance != extractor.name:
            return failed(f"extractor returned attribute {value.name} from {value.provenance}")
        return value


__all__ = ["ExtractionEngine"]
