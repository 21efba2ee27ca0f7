"""Attribute extractor contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from venrich.core.exceptions import ExtractionError
from venrich.core.models import AttributeValue, RawResponse, UnifiedRecordBuilder


class AttributeExtractor(ABC):
    """Produces one named attribute from a raw provider response.

    Extractors are registered under a single product category. They read the
    instrument's payload from ``raw`` and may read attributes produced by
    earlier extractors through ``builder.get``; only the engine writes to the
    builder.
    """

    def __init__(self, attribute: str, *, name: str | None = None, required: bool = False) -> None:
        self.attribute = attribute
        self.name = name or f"{type(self).__name__}:{attribute}"
        self.required = required

    @abstractmethod
    def extract(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> AttributeValue:
        """Return the attribute value or raise :class:`ExtractionError`."""
        pass

    def payload(self, raw: RawResponse, builder: UnifiedRecordBuilder) -> Mapping[str, Any]:
        payload = raw.payload_for(builder.identifier)
        if payload is None:
            raise ExtractionError(f"No payload for {builder.identifier}", self.attribute)
        return payload

    def field_value(self, raw: RawResponse, builder: UnifiedRecordBuilder, field: str) -> Any:
        payload = self.payload(raw, builder)
        value = payload.get(field)
        if value is None:
            raise ExtractionError(f"Field {field} missing from payload", self.attribute)
        return value

    def success(self, value: Any) -> AttributeValue:
        return AttributeValue.success(self.attribute, value, self.name, required=self.required)

    def degraded(self, value: Any, reason: str) -> AttributeValue:
        return AttributeValue.degraded(self.attribute, value, self.name, reason, required=self.required)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, attribute={self.attribute!r})"


__all__ = ["AttributeExtractor"]
