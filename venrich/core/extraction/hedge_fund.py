"""Hedge fund attribute extractors."""

from __future__ import annotations

from venrich.core.extraction.kinds import BreakdownExtractor, NestedExtractor, ScalarExtractor, TextExtractor
from venrich.core.extraction.registry import ExtractorRegistry
from venrich.core.models import ProductCategory

STRATEGIES = (
    "Long/Short Equity",
    "Global Macro",
    "Event Driven",
    "Relative Value",
    "Credit",
    "Multi-Strategy",
    "Managed Futures",
    "Quantitative",
)

RISK_METRIC_KEYS = ("volatility", "sharpe_ratio", "sortino_ratio", "max_drawdown", "var_95")


def register(registry: ExtractorRegistry) -> None:
    """Register the default hedge fund extractor chain.

    ``strategy`` is required: a fund record without it is rejected.
    """

    category = ProductCategory.HEDGE_FUND
    registry.register(category, TextExtractor("strategy", choices=STRATEGIES, required=True))
    registry.register(category, ScalarExtractor("aum", minimum=0.0))
    registry.register(category, BreakdownExtractor("asset_allocation"))
    registry.register(category, BreakdownExtractor("geographic_exposure"))
    registry.register(
        category,
        NestedExtractor("risk_metrics", keys=RISK_METRIC_KEYS, required_keys=("volatility",)),
    )
    registry.register(category, ScalarExtractor("management_fee", minimum=0.0, maximum=100.0))
    registry.register(category, ScalarExtractor("performance_fee", minimum=0.0, maximum=100.0))
