"""Instrument identifiers, bulk requests, batches and raw provider payloads."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from venrich.core.exceptions import ErrorCode, InvalidRequestError
from venrich.core.models.category import ProductCategory


class InstrumentIdentifier(BaseModel):
    """金融工具标识 (ISIN, FIGI)."""

    model_config = ConfigDict(frozen=True)

    isin: str
    figi: str

    @field_validator("isin", "figi")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @classmethod
    def coerce(cls, value: InstrumentIdentifier | Mapping[str, Any] | tuple[str, str]) -> InstrumentIdentifier:
        """Build an identifier from a model, mapping or ``(isin, figi)`` pair."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(**value)
        isin, figi = value
        return cls(isin=isin, figi=figi)

    def __str__(self) -> str:
        return f"{self.isin}/{self.figi}"


class BulkRequest(BaseModel):
    """批量请求, 创建后不可变."""

    model_config = ConfigDict(frozen=True)

    request_id: str = Field(default_factory=lambda: uuid4().hex)
    source_id: str
    product_category: ProductCategory
    identifiers: tuple[InstrumentIdentifier, ...]

    @classmethod
    def create(
        cls,
        source_id: str,
        product_category: ProductCategory | str,
        identifiers: Iterable[InstrumentIdentifier | Mapping[str, Any] | tuple[str, str]],
        request_id: str | None = None,
    ) -> BulkRequest:
        """Validate raw input and build a request.

        Raises:
            UnknownCategoryError: category is not a known product category
            InvalidRequestError: identifiers are malformed or duplicated
        """
        category = ProductCategory.parse(product_category)
        try:
            resolved = tuple(InstrumentIdentifier.coerce(item) for item in identifiers)
        except (ValidationError, TypeError, ValueError) as exc:
            raise InvalidRequestError(f"Malformed instrument identifier: {exc}") from exc

        empty = [str(item) for item in resolved if not item.isin or not item.figi]
        if empty:
            raise InvalidRequestError(
                "Instrument identifiers must have non-empty ISIN and FIGI",
                details={"identifiers": empty},
            )

        # one ISIN may list under several FIGIs; only the pair must be unique
        seen: set[InstrumentIdentifier] = set()
        duplicates: list[str] = []
        for item in resolved:
            if item in seen:
                duplicates.append(str(item))
            seen.add(item)
        if duplicates:
            raise InvalidRequestError(
                "Duplicate instrument identifiers in bulk request",
                error_code=ErrorCode.DUPLICATE_IDENTIFIER,
                details={"duplicates": duplicates},
            )

        kwargs: dict[str, Any] = {
            "source_id": source_id,
            "product_category": category,
            "identifiers": resolved,
        }
        if request_id:
            kwargs["request_id"] = request_id
        return cls(**kwargs)


def fingerprint_identifiers(identifiers: Iterable[InstrumentIdentifier]) -> str:
    """Order-insensitive SHA-256 fingerprint of an identifier set."""
    parts = sorted(f"{item.isin}|{item.figi}" for item in identifiers)
    return hashlib.sha256(",".join(parts).encode()).hexdigest()


@dataclass(frozen=True)
class Batch:
    """A contiguous, size-bounded slice of a bulk request."""

    index: int
    source_id: str
    product_category: ProductCategory
    identifiers: tuple[InstrumentIdentifier, ...]
    request_id: str | None = None

    @property
    def fingerprint(self) -> str:
        return fingerprint_identifiers(self.identifiers)

    def __len__(self) -> int:
        return len(self.identifiers)


@dataclass(frozen=True)
class RawResponse:
    """Provider payload for one batch, keyed by instrument identifier.

    Providers translate their wire format into canonical per-instrument
    mappings before handing the response to extraction.
    """

    source_id: str
    batch_fingerprint: str
    fetched_at: datetime
    payloads: Mapping[InstrumentIdentifier, Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {
            InstrumentIdentifier.coerce(key): MappingProxyType(dict(payload)) for key, payload in self.payloads.items()
        }
        object.__setattr__(self, "payloads", MappingProxyType(frozen))

    def payload_for(self, identifier: InstrumentIdentifier) -> Mapping[str, Any] | None:
        return self.payloads.get(identifier)


__all__ = [
    "InstrumentIdentifier",
    "BulkRequest",
    "Batch",
    "RawResponse",
    "fingerprint_identifiers",
]
