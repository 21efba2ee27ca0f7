"""Fixed-income attribute extractors."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from venrich.core.exceptions import ExtractionError
from venrich.core.extraction.base import AttributeExtractor
from venrich.core.extraction.kinds import BreakdownExtractor, DerivedExtractor, ScalarExtractor, to_float
from venrich.core.extraction.registry import ExtractorRegistry
from venrich.core.models import AttributeValue, ProductCategory, RawResponse, UnifiedRecordBuilder

_SP_SCALE = (
    "AAA", "AA+", "AA", "AA-", "A+", "A", "A-", "BBB+", "BBB", "BBB-",
    "BB+", "BB", "BB-", "B+", "B", "B-", "CCC+", "CCC", "CCC-", "CC", "C", "D",
)
_MOODYS_SCALE = (
    "Aaa", "Aa1", "Aa2", "Aa3", "A1", "A2", "A3", "Baa1", "Baa2", "Baa3",
    "Ba1", "Ba2", "Ba3", "B1", "B2", "B3", "Caa1", "Caa2", "Caa3", "Ca", "C",
)
_INVESTMENT_GRADE_RANK = 10  # BBB- / Baa3

_SP_RANKS = {rating: rank for rank, rating in enumerate(_SP_SCALE, start=1)}
_MOODYS_RANKS = {rating.upper(): (rating, rank) for rank, rating in enumerate(_MOODYS_SCALE, start=1)}


def normalize_rating(raw_rating: str) -> tuple[str, str, int]:
    """Return ``(rating, scale, rank)`` for an S&P/Fitch or Moody's rating string.

    Raises:
        ValueError: the rating is on neither scale
    """
    text = raw_rating.strip()
    # exact matches first: "C" exists on both scales
    if text in _SP_RANKS:
        return text, "sp", _SP_RANKS[text]
    if text in _MOODYS_SCALE:
        return text, "moodys", _MOODYS_RANKS[text.upper()][1]
    upper = text.upper()
    if upper in _SP_RANKS:
        return upper, "sp", _SP_RANKS[upper]
    if upper in _MOODYS_RANKS:
        rating, rank = _MOODYS_RANKS[upper]
        return rating, "moodys", rank
    raise ValueError(f"Unrecognised credit rating {raw_rating!r}")


class CreditRatingExtractor(AttributeExtractor):
    """Credit rating normalised onto a common rank.

    Accepts either a bare rating string or ``{"rating": ..., "agency": ...}``.
    """

    def __init__(self, attribute: str = "credit_rating", field: str = "credit_rating", **kwargs: Any) -> None:
        super().__init__(attribute, **kwargs)
        self.field = field

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        value = self.field_value(raw, builder, self.field)
        agency = None
        if isinstance(value, Mapping):
            agency = value.get("agency")
            value = value.get("rating")
        if not isinstance(value, str) or not value.strip():
            raise ExtractionError("Credit rating must be a non-empty string", self.attribute)
        try:
            rating, scale, rank = normalize_rating(value)
        except ValueError as exc:
            raise ExtractionError(str(exc), self.attribute) from exc
        return self.success(
            {
                "rating": rating,
                "scale": scale,
                "agency": agency,
                "rank": rank,
                "investment_grade": rank <= _INVESTMENT_GRADE_RANK,
            }
        )


def _spread_bps(values: Mapping[str, Any], payload: Mapping[str, Any]) -> float:
    benchmark = payload.get("benchmark_yield")
    if benchmark is None:
        raise ExtractionError("benchmark_yield missing from payload", "spread_to_benchmark")
    return round((values["yield_to_maturity"] - to_float(benchmark, "spread_to_benchmark")) * 100, 4)


def register(registry: ExtractorRegistry) -> None:
    """Register the default fixed-income extractor chain."""

    category = ProductCategory.FIXED_INCOME
    registry.register(category, ScalarExtractor("yield_to_maturity", minimum=-50.0, maximum=100.0))
    registry.register(category, CreditRatingExtractor())
    registry.register(category, ScalarExtractor("modified_duration", minimum=0.0))
    registry.register(category, ScalarExtractor("coupon_rate", minimum=0.0, maximum=100.0))
    registry.register(category, BreakdownExtractor("maturity_profile"))
    registry.register(category, DerivedExtractor("spread_to_benchmark", ("yield_to_maturity",), _spread_bps))
