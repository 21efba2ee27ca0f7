"""Reusable extractor kinds: scalar, text, breakdown, nested and derived."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from venrich.core.exceptions import ExtractionError
from venrich.core.extraction.base import AttributeExtractor
from venrich.core.models import AttributeValue, RawResponse, UnifiedRecordBuilder


def to_float(value: Any, attribute: str) -> float:
    """Coerce numeric payload values, rejecting booleans and non-finite numbers."""
    if isinstance(value, bool):
        raise ExtractionError(f"Expected a number, got boolean {value}", attribute)
    if isinstance(value, (int, float, Decimal)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(Decimal(value.strip().replace(",", "")))
        except InvalidOperation as exc:
            raise ExtractionError(f"Cannot parse number from {value!r}", attribute) from exc
    else:
        raise ExtractionError(f"Expected a number, got {type(value).__name__}", attribute)
    if not math.isfinite(result):
        raise ExtractionError(f"Non-finite value {value!r}", attribute)
    return result


class ScalarExtractor(AttributeExtractor):
    """Numeric attribute read from one payload field, optionally bounded."""

    def __init__(
        self,
        attribute: str,
        field: str | None = None,
        *,
        minimum: float | None = None,
        maximum: float | None = None,
        name: str | None = None,
        required: bool = False,
    ) -> None:
        super().__init__(attribute, name=name, required=required)
        self.field = field or attribute
        self.minimum = minimum
        self.maximum = maximum

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        value = to_float(self.field_value(raw, builder, self.field), self.attribute)
        if self.minimum is not None and value < self.minimum:
            raise ExtractionError(f"{value} is below the minimum {self.minimum}", self.attribute)
        if self.maximum is not None and value > self.maximum:
            raise ExtractionError(f"{value} is above the maximum {self.maximum}", self.attribute)
        return self.success(value)


class TextExtractor(AttributeExtractor):
    """Text attribute, optionally restricted to a set of choices."""

    def __init__(
        self,
        attribute: str,
        field: str | None = None,
        *,
        choices: Sequence[str] | None = None,
        name: str | None = None,
        required: bool = False,
    ) -> None:
        super().__init__(attribute, name=name, required=required)
        self.field = field or attribute
        self.choices = {choice.lower(): choice for choice in choices} if choices else None

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        value = self.field_value(raw, builder, self.field)
        if not isinstance(value, str) or not value.strip():
            raise ExtractionError(f"Expected non-empty text for {self.field}", self.attribute)
        text = value.strip()
        if self.choices is None:
            return self.success(text)
        canonical = self.choices.get(text.lower())
        if canonical is None:
            return self.degraded(text, f"{text!r} is not a recognised value")
        return self.success(canonical)


class BreakdownExtractor(AttributeExtractor):
    """Weight breakdown (label -> fraction), e.g. sector or asset allocation.

    Percentages are converted to fractions when the weights sum to more than
    1.5. A breakdown whose fractions do not sum to 1 within ``tolerance`` is
    returned as DEGRADED.
    """

    def __init__(
        self,
        attribute: str,
        field: str | None = None,
        *,
        tolerance: float = 0.01,
        name: str | None = None,
        required: bool = False,
    ) -> None:
        super().__init__(attribute, name=name, required=required)
        self.field = field or attribute
        self.tolerance = tolerance

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        value = self.field_value(raw, builder, self.field)
        if not isinstance(value, Mapping) or not value:
            raise ExtractionError(f"Expected a non-empty breakdown for {self.field}", self.attribute)

        weights: dict[str, float] = {}
        for label, weight in value.items():
            number = to_float(weight, self.attribute)
            if number < 0:
                raise ExtractionError(f"Negative weight for {label}", self.attribute)
            weights[str(label)] = number

        total = sum(weights.values())
        if total > 1.5:
            weights = {label: weight / 100.0 for label, weight in weights.items()}
            total = total / 100.0

        breakdown = {label: round(weight, 6) for label, weight in sorted(weights.items())}
        if abs(total - 1.0) > self.tolerance:
            return self.degraded(breakdown, f"weights sum to {total:.4f}")
        return self.success(breakdown)


class NestedExtractor(AttributeExtractor):
    """Structured attribute assembled from a subset of keys of one payload section."""

    def __init__(
        self,
        attribute: str,
        field: str | None = None,
        *,
        keys: Sequence[str],
        required_keys: Sequence[str] = (),
        numeric: bool = True,
        name: str | None = None,
        required: bool = False,
    ) -> None:
        super().__init__(attribute, name=name, required=required)
        self.field = field or attribute
        self.keys = tuple(keys)
        self.required_keys = tuple(required_keys)
        self.numeric = numeric

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        section = self.field_value(raw, builder, self.field)
        if not isinstance(section, Mapping):
            raise ExtractionError(f"Expected a mapping for {self.field}", self.attribute)

        missing_required = [key for key in self.required_keys if section.get(key) is None]
        if missing_required:
            raise ExtractionError(f"Missing required keys: {', '.join(missing_required)}", self.attribute)

        result: dict[str, Any] = {}
        missing: list[str] = []
        for key in self.keys:
            item = section.get(key)
            if item is None:
                missing.append(key)
                continue
            result[key] = to_float(item, self.attribute) if self.numeric else item

        if not result:
            raise ExtractionError(f"None of {', '.join(self.keys)} present", self.attribute)
        if missing:
            return self.degraded(result, f"missing keys: {', '.join(missing)}")
        return self.success(result)


class DerivedExtractor(AttributeExtractor):
    """Attribute computed from attributes produced earlier in the chain.

    ``compute`` receives the produced input values and the instrument payload.
    It must be registered after the extractors producing its inputs.
    """

    def __init__(
        self,
        attribute: str,
        inputs: Sequence[str],
        compute: Callable[[Mapping[str, Any], Mapping[str, Any]], Any],
        *,
        name: str | None = None,
        required: bool = False,
    ) -> None:
        super().__init__(attribute, name=name, required=required)
        self.inputs = tuple(inputs)
        self.compute = compute

    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        values: dict[str, Any] = {}
        for input_name in self.inputs:
            produced = builder.get(input_name)
            if produced is None or not produced.is_produced:
                raise ExtractionError(f"Input attribute {input_name} unavailable", self.attribute)
            values[input_name] = produced.value
        return self.success(self.compute(values, self.payload(raw, builder)))


__all__ = [
    "to_float",
    "ScalarExtractor",
    "TextExtractor",
    "BreakdownExtractor",
    "NestedExtractor",
    "DerivedExtractor",
]
