"""Equity attribute extractors."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from venrich.core.exceptions import ExtractionError
from venrich.core.extraction.kinds import BreakdownExtractor, DerivedExtractor, ScalarExtractor, TextExtractor
from venrich.core.extraction.registry import ExtractorRegistry
from venrich.core.models import ProductCategory

GICS_SECTORS = (
    "Communication Services",
    "Consumer Discretionary",
    "Consumer Staples",
    "Energy",
    "Financials",
    "Health Care",
    "Industrials",
    "Information Technology",
    "Materials",
    "Real Estate",
    "Utilities",
)


def _earnings_yield(values: Mapping[str, Any], payload: Mapping[str, Any]) -> float:
    pe_ratio = values["pe_ratio"]
    if pe_ratio == 0:
        raise ExtractionError("pe_ratio is zero", "earnings_yield")
    return round(100.0 / pe_ratio, 4)


def register(registry: ExtractorRegistry) -> None:
    """Register the default equity extractor chain."""

    category = ProductCategory.EQUITY
    registry.register(category, ScalarExtractor("market_cap", minimum=0.0))
    registry.register(category, ScalarExtractor("pe_ratio"))
    registry.register(category, ScalarExtractor("dividend_yield", minimum=0.0, maximum=100.0))
    registry.register(category, ScalarExtractor("beta"))
    registry.register(category, TextExtractor("sector", choices=GICS_SECTORS))
    registry.register(category, BreakdownExtractor("revenue_by_region"))
    registry.register(category, DerivedExtractor("earnings_yield", ("pe_ratio",), _earnings_yield))
