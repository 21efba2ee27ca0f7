"""Attribute extraction: extractor contract, kinds, registry and engine."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from venrich.core.extraction import equity, fixed_income, hedge_fund
from venrich.core.extraction.base import AttributeExtractor
from venrich.core.extraction.engine import ExtractionEngine
from venrich.core.extraction.fixed_income import CreditRatingExtractor, normalize_rating
from venrich.core.extraction.kinds import (
    BreakdownExtractor,
    DerivedExtractor,
    NestedExtractor,
    ScalarExtractor,
    TextExtractor,
    to_float,
)
from venrich.core.extraction.registry import ExtractorRegistry


def build_default_registry(
    extractor_order: Mapping[str, Sequence[str]] | None = None,
    *,
    freeze: bool = True,
) -> ExtractorRegistry:
    """Build the registry holding the default extractor sets of every category."""
    registry = ExtractorRegistry()
    fixed_income.register(registry)
    equity.register(registry)
    hedge_fund.register(registry)
    if extractor_order:
        registry.apply_order(extractor_order)
    if freeze:
        registry.freeze()
    return registry


__all__ = [
    "AttributeExtractor",
    "BreakdownExtractor",
    "CreditRatingExtractor",
    "DerivedExtractor",
    "ExtractionEngine",
    "ExtractorRegistry",
    "NestedExtractor",
    "ScalarExtractor",
    "TextExtractor",
    "build_default_registry",
    "normalize_rating",
    "to_float",
]
