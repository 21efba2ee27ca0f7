"""测试提取引擎."""

from __future__ import annotations

import pytest
from conftest import (
    EQUITY_PAYLOAD,
    FETCHED_AT,
    FIXED_INCOME_PAYLOAD,
    HEDGE_FUND_PAYLOAD,
    ScriptedProvider,
    make_identifiers,
)

from venrich.core.exceptions import ExtractionError
from venrich.core.extraction import (
    AttributeExtractor,
    ExtractionEngine,
    ExtractorRegistry,
    ScalarExtractor,
    build_default_registry,
)
from venrich.core.models import AttributeStatus, AttributeValue, Batch, InstrumentIdentifier, ProductCategory, RawResponse
from venrich.core.monitoring import MetricsCollector

IDENTIFIER = InstrumentIdentifier(isin="XS0000000001", figi="BBG000000001")


def _raw(payload: dict, source: str = "src") -> RawResponse:
    return RawResponse(source, "fp", FETCHED_AT, {IDENTIFIER: payload})


class ExplodingExtractor(AttributeExtractor):
    def extract(self, raw, builder):
        raise RuntimeError("kaboom")


class WrongTypeExtractor(AttributeExtractor):
    def extract(self, raw, builder):
        return 42


class WrongNameExtractor(AttributeExtractor):
    def extract(self, raw, builder):
        return AttributeValue.success("other", 1, self.name)


class TestExtractionEngine:
    @pytest.fixture
    def engine(self) -> ExtractionEngine:
        return ExtractionEngine(build_default_registry())

    @pytest.mark.parametrize(
        ("category", "payload"),
        [
            (ProductCategory.FIXED_INCOME, FIXED_INCOME_PAYLOAD),
            (ProductCategory.EQUITY, EQUITY_PAYLOAD),
            (ProductCategory.HEDGE_FUND, HEDGE_FUND_PAYLOAD),
        ],
    )
    def test_complete_payload_produces_every_attribute(self, engine, category, payload):
        record = engine.extract(_raw(payload), IDENTIFIER, category)

        assert record.failed_attributes == ()
        assert all(value.status is AttributeStatus.SUCCESS for value in record.attributes.values())
        assert record.product_category is category

    def test_fixed_income_values(self, engine):
        record = engine.extract(_raw(FIXED_INCOME_PAYLOAD), IDENTIFIER, "fixed_income")

        assert record.attributes["yield_to_maturity"].value == 4.25
        assert record.attributes["credit_rating"].value["rating"] == "BBB+"
        assert record.attributes["spread_to_benchmark"].value == pytest.approx(35.0)

    def test_extraction_is_deterministic(self, engine):
        raw = _raw(FIXED_INCOME_PAYLOAD)
        first = engine.extract(raw, IDENTIFIER, "fixed_income")
        second = engine.extract(raw, IDENTIFIER, "fixed_income")

        assert first == second
        assert first.to_payload() == second.to_payload()

    def test_failures_do_not_short_circuit(self, engine):
        payload = {**FIXED_INCOME_PAYLOAD, "credit_rating": "not-a-rating"}
        del payload["modified_duration"]

        record = engine.extract(_raw(payload), IDENTIFIER, "fixed_income")

        assert record.failed_attributes == ("credit_rating", "modified_duration")
        failed = record.attributes["credit_rating"]
        assert failed.status is AttributeStatus.FAILED
        assert failed.provenance == "CreditRatingExtractor:credit_rating"
        assert "not-a-rating" in failed.reason
        assert record.attributes["coupon_rate"].is_produced

    def test_derived_attribute_fails_with_its_input(self, engine):
        payload = {key: value for key, value in FIXED_INCOME_PAYLOAD.items() if key != "yield_to_maturity"}
        record = engine.extract(_raw(payload), IDENTIFIER, "fixed_income")

        assert "spread_to_benchmark" in record.failed_attributes

    def test_unexpected_errors_become_failed_values(self):
        registry = ExtractorRegistry()
        registry.register("equity", ExplodingExtractor("boom"))
        registry.register("equity", WrongTypeExtractor("wrong_type"))
        registry.register("equity", WrongNameExtractor("wrong_name"))
        registry.register("equity", ScalarExtractor("pe_ratio"))
        metrics = MetricsCollector()

        record = ExtractionEngine(registry, metrics=metrics).extract(_raw(EQUITY_PAYLOAD), IDENTIFIER, "equity")

        assert record.failed_attributes == ("boom", "wrong_type", "wrong_name")
        assert "RuntimeError: kaboom" in record.attributes["boom"].reason
        assert record.attributes["pe_ratio"].value == 25.0
        sample = metrics.registry.get_sample_value(
            "venrich_extractor_failures_total",
            {"category": "equity", "extractor": "ExplodingExtractor:boom"},
        )
        assert sample == 1.0

    def test_missing_payload_fails_every_attribute(self, engine):
        record = engine.extract(RawResponse("src", "fp", FETCHED_AT, {}), IDENTIFIER, "equity")
        assert set(record.failed_attributes) == set(record.attributes)

    def test_required_flag_is_carried_on_failed_values(self, engine):
        payload = {key: value for key, value in HEDGE_FUND_PAYLOAD.items() if key != "strategy"}
        record = engine.extract(_raw(payload), IDENTIFIER, "hedge_fund")
        assert record.attributes["strategy"].required is True
        assert record.attributes["strategy"].status is AttributeStatus.FAILED


@pytest.mark.asyncio
async def test_swapping_provider_keeps_attribute_set() -> None:
    engine = ExtractionEngine(build_default_registry())
    identifiers = tuple(make_identifiers(2))
    batch = Batch(0, "src", ProductCategory.EQUITY, identifiers)

    first = await ScriptedProvider(EQUITY_PAYLOAD, name="alpha").fetch(batch)
    other_values = {**EQUITY_PAYLOAD, "pe_ratio": 12.0, "beta": 0.8}
    second = await ScriptedProvider(other_values, name="beta").fetch(batch)

    for identifier in identifiers:
        a = engine.extract(first, identifier, ProductCategory.EQUITY)
        b = engine.extract(second, identifier, ProductCategory.EQUITY)
        assert set(a.attributes) == set(b.attributes)
        assert a.attributes["pe_ratio"].value != b.attributes["pe_ratio"].value


def test_extraction_error_carries_attribute() -> None:
    error = ExtractionError("bad", "pe_ratio")
    assert error.attribute == "pe_ratio"
    assert error.details["attribute"] == "pe_ratio"
