"""Attribute values and the two-phase unified analytics record."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from venrich.core.exceptions import ConfigurationError, RecordFrozenError
from venrich.core.models.category import ProductCategory
from venrich.core.models.instrument import InstrumentIdentifier


class AttributeStatus(str, Enum):
    """属性提取状态."""

    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"


def freeze_value(value: Any) -> Any:
    """Recursively convert mappings and sequences into read-only equivalents."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_value(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze_value(item) for item in value)
    return value


def thaw_value(value: Any) -> Any:
    """Inverse of :func:`freeze_value`, producing JSON-friendly containers."""
    if isinstance(value, Mapping):
        return {key: thaw_value(item) for key, item in value.items()}
    if isinstance(value, (tuple, frozenset)):
        return [thaw_value(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, tuple, list, set, frozenset)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class AttributeValue:
    """A named value produced by exactly one extractor."""

    name: str
    value: Any
    provenance: str
    status: AttributeStatus
    reason: str | None = None
    required: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", freeze_value(self.value))

    @classmethod
    def success(cls, name: str, value: Any, provenance: str, *, required: bool = False) -> AttributeValue:
        return cls(name, value, provenance, AttributeStatus.SUCCESS, required=required)

    @classmethod
    def degraded(
        cls, name: str, value: Any, provenance: str, reason: str, *, required: bool = False
    ) -> AttributeValue:
        return cls(name, value, provenance, AttributeStatus.DEGRADED, reason=reason, required=required)

    @classmethod
    def failed(cls, name: str, provenance: str, reason: str, *, required: bool = False) -> AttributeValue:
        return cls(name, None, provenance, AttributeStatus.FAILED, reason=reason, required=required)

    @property
    def is_produced(self) -> bool:
        """True when the extractor produced a usable value."""
        return self.status is not AttributeStatus.FAILED

    def to_payload(self) -> dict[str, Any]:
        return {
            "value": thaw_value(self.value),
            "provenance": self.provenance,
            "status": self.status.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class UnifiedRecord:
    """Provider-agnostic, frozen analytics record for one instrument."""

    identifier: InstrumentIdentifier
    product_category: ProductCategory
    source_id: str
    attributes: Mapping[str, AttributeValue]
    metadata: Mapping[str, Any]

    @property
    def fetched_at(self) -> datetime:
        return self.metadata["fetched_at"]

    @property
    def produced_attributes(self) -> dict[str, AttributeValue]:
        return {name: value for name, value in self.attributes.items() if value.is_produced}

    @property
    def failed_attributes(self) -> tuple[str, ...]:
        return tuple(self.metadata.get("failed_attributes", ()))

    @property
    def idempotency_key(self) -> str:
        """Stable key the downstream uses to deduplicate repeated sends."""
        parts = [
            self.identifier.isin,
            self.identifier.figi,
            self.source_id,
            self.product_category.value,
            self.fetched_at.isoformat(),
        ]
        return hashlib.sha256("|".join(parts).encode()).hexdigest()

    def to_payload(self) -> dict[str, Any]:
        """JSON-friendly representation used by dispatch and audit."""
        return {
            "isin": self.identifier.isin,
            "figi": self.identifier.figi,
            "product_category": self.product_category.value,
            "source_id": self.source_id,
            "attributes": {name: value.to_payload() for name, value in sorted(self.attributes.items())},
            "metadata": thaw_value(self.metadata),
        }


class UnifiedRecordBuilder:
    """Accumulates attribute values, then freezes into a :class:`UnifiedRecord`.

    Only the extraction engine writes to a builder. Extractors may read values
    added by extractors that ran before them through :meth:`get`.
    """

    def __init__(
        self,
        identifier: InstrumentIdentifier,
        product_category: ProductCategory,
        source_id: str,
        fetched_at: datetime,
    ) -> None:
        self.identifier = identifier
        self.product_category = product_category
        self.source_id = source_id
        self.fetched_at = fetched_at
        self._values: dict[str, AttributeValue] = {}
        self._record: UnifiedRecord | None = None

    @property
    def is_frozen(self) -> bool:
        return self._record is not None

    def add(self, value: AttributeValue) -> None:
        if self._record is not None:
            raise RecordFrozenError(value.name)
        if value.name in self._values:
            raise ConfigurationError(
                f"Attribute {value.name} already produced by {self._values[value.name].provenance}",
                config_key="extractors",
            )
        self._values[value.name] = value

    def get(self, name: str) -> AttributeValue | None:
        return self._values.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._values)

    def freeze(self) -> UnifiedRecord:
        if self._record is None:
            failed = tuple(name for name, value in self._values.items() if not value.is_produced)
            self._record = UnifiedRecord(
                identifier=self.identifier,
                product_category=self.product_category,
                source_id=self.source_id,
                attributes=MappingProxyType(dict(self._values)),
                metadata=MappingProxyType({"fetched_at": self.fetched_at, "failed_attributes": failed}),
            )
        return self._record


__all__ = [
    "AttributeStatus",
    "AttributeValue",
    "UnifiedRecord",
    "UnifiedRecordBuilder",
    "freeze_value",
    "thaw_value",
    "is_empty_value",
]
